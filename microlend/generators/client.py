"""Client generator."""

from datetime import datetime
from typing import Iterator

from microlend.generators.base import BaseGenerator
from microlend.models import Client


class ClientGenerator(BaseGenerator):
    """Generate synthetic borrowers."""

    def generate(self, created_at: datetime | None = None) -> Client:
        """Generate a single client.

        Parameters
        ----------
        created_at : datetime | None
            Registration timestamp (default: left for the store to fill).

        Returns
        -------
        Client
            Generated client.
        """
        return Client(
            client_id=self.fake.uuid4(),
            name=self.fake.name(),
            phone=self.fake.phone_number(),
            address=self.fake.address().replace("\n", ", "),
            id_document=self.fake.ssn(),
            occupation=self.fake.job(),
            created_at=created_at,
        )

    def generate_batch(self, count: int) -> Iterator[Client]:
        """Generate multiple clients.

        Parameters
        ----------
        count : int
            Number of clients to generate.

        Yields
        ------
        Client
            Generated clients.
        """
        for _ in range(count):
            yield self.generate()
