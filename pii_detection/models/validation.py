"""
Outcome of a single format or checksum validator.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating one candidate value."""

    is_valid: bool
    confidence: float
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "confidence": self.confidence,
            "reason": self.reason,
        }
