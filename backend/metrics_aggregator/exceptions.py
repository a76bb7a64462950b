"""
Exception types raised by the store, the generator and the aggregation engine.
All of them are fatal for the run that raises them.
"""


class MetricsAggregatorError(Exception):
    """Base class for every error raised by this package."""


class StoreError(MetricsAggregatorError):
    """The database is unreachable or a query failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class ReferentialIntegrityError(StoreError):
    """A row referenced a parent ID that does not exist."""


class GenerationPreconditionError(MetricsAggregatorError, ValueError):
    """Scale parameters passed to the generator are unusable."""
