"""Pre-built data generation scenarios."""

from microlend.scenarios.portfolio import LoanPortfolioScenario

__all__ = ["LoanPortfolioScenario"]
