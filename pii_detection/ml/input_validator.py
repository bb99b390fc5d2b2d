"""
Sanity checks applied before text reaches the NER model.

Never raises: every rejection is an InputValidationResult(valid=False)
with an error message; soft problems are returned as warnings.
"""
import re
import unicodedata
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional

CHUNKING_HINT = "Consider chunking large documents before inference"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_REPLACEMENT_CHAR = "�"


@dataclass(frozen=True)
class InputValidationConfig:
    max_length: int = 100_000
    min_length: int = 1
    allow_empty: bool = False
    normalize_encoding: bool = True
    trim_whitespace: bool = True


@dataclass
class InputValidationResult:
    valid: bool
    text: Optional[str] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def validate_ml_input(
    text: Any,
    config: Optional[InputValidationConfig] = None,
) -> InputValidationResult:
    cfg = config or InputValidationConfig()
    warnings: List[str] = []

    if text is None:
        return InputValidationResult(valid=False, error="Input text is None")
    if not isinstance(text, str):
        return InputValidationResult(
            valid=False,
            error=f"Input text must be a string, got {type(text).__name__}",
        )

    normalized = text.strip() if cfg.trim_whitespace else text

    if not normalized:
        if not cfg.allow_empty:
            return InputValidationResult(valid=False, error="Input text is empty")
        return InputValidationResult(valid=True, text=normalized)

    if len(normalized) < cfg.min_length:
        return InputValidationResult(
            valid=False,
            error=f"Input text is too short ({len(normalized)} < {cfg.min_length} characters)",
        )

    if len(normalized) > cfg.max_length:
        return InputValidationResult(
            valid=False,
            error=(
                f"Input text exceeds maximum length of {cfg.max_length} characters "
                f"(got {len(normalized)})"
            ),
            warnings=[CHUNKING_HINT],
        )

    if cfg.normalize_encoding:
        had_replacement = _REPLACEMENT_CHAR in normalized
        nfc = unicodedata.normalize("NFC", normalized)
        if nfc != normalized:
            normalized = nfc
            warnings.append("Text encoding was normalized")
        if had_replacement:
            warnings.append("Invalid UTF-8 sequences were replaced")

    control_count = len(_CONTROL_CHARS.findall(normalized))
    if control_count:
        ratio = control_count / len(normalized)
        if ratio > 0.1:
            warnings.append(
                f"High ratio of control characters detected "
                f"({control_count} chars, {ratio * 100:.1f}%)"
            )
        elif control_count > 10:
            warnings.append(f"Control characters detected ({control_count} chars)")

    return InputValidationResult(valid=True, text=normalized, warnings=warnings)


def is_valid_ml_input(text: Any) -> bool:
    return validate_ml_input(text).valid


def get_validation_error(text: Any) -> Optional[str]:
    return validate_ml_input(text).error


class MLInputValidator:
    def __init__(self, config: Optional[InputValidationConfig] = None) -> None:
        self.config = config or InputValidationConfig()

    def validate(self, text: Any) -> InputValidationResult:
        return validate_ml_input(text, self.config)

    def is_valid(self, text: Any) -> bool:
        return self.validate(text).valid

    def get_config(self) -> InputValidationConfig:
        return self.config

    def configure(self, **changes) -> None:
        self.config = replace(self.config, **changes)
