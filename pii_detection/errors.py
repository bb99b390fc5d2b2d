"""
Exception types raised by the detection pipeline.

Format mismatches are never exceptions (they become low-confidence results);
these types cover programming and configuration errors only.
"""
from typing import List


class PIIDetectionError(Exception):
    """Base class for pipeline errors."""


class SpanMismatchError(PIIDetectionError):
    """Raised when an entity's text no longer matches its document span."""

    def __init__(self, entity_id: str, start: int, end: int) -> None:
        self.entity_id = entity_id
        self.start = start
        self.end = end
        super().__init__(
            f"Entity '{entity_id}' text does not match document[{start}:{end}]"
        )


class DenyListConfigError(PIIDetectionError):
    """Raised when a deny-list configuration document is rejected."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = errors
        super().__init__(f"Invalid deny-list configuration: {errors}")


class PassConfigurationError(PIIDetectionError):
    """Raised when a pass is registered or configured inconsistently."""
