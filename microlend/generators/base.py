"""Base generator class for all data generators."""

from __future__ import annotations

from abc import ABC

from faker import Faker


class BaseGenerator(ABC):
    """Base class for all data generators.

    Provides a Faker instance and seed-based reproducibility. Random
    choices go through ``self.random``, the Faker instance's own
    generator, so two generators built with the same seed produce the
    same sequence regardless of what else uses the global ``random``.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``es_MX``).
    """

    def __init__(self, seed: int | None = None, locale: str = "es_MX") -> None:
        self.fake = Faker(locale)
        if seed is not None:
            self.fake.seed_instance(seed)
        self.random = self.fake.random
