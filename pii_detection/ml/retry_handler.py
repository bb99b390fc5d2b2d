"""
ML Retry Handler — bounded exponential backoff around model inference.

Errors are classified from "<ExceptionName>: <message>" (lowercased):
fatal patterns win over transient ones, and unknown errors are not
retried. with_retry() never raises for errors raised by the wrapped call;
the outcome is reported as a RetryResult.
"""
import logging
import re
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Generic, Optional, TypeVar

from pii_detection.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_PATTERNS = (
    "timeout",
    "timed out",
    "network",
    "connection",
    "econnrefused",
    "econnreset",
    "enotfound",
    "model not ready",
    "model loading",
    "temporary",
    "temporarily",
    "rate limit",
    "too many requests",
    "service unavailable",
    "bad gateway",
    "gateway timeout",
)

FATAL_PATTERNS = (
    "invalid input",
    "model not found",
    "can't find model",
    "model corrupted",
    "corrupted",
    "out of memory",
    "memoryerror",
    "syntax error",
    "type error",
    "typeerror",
    "attributeerror",
    "invalid configuration",
    "missing required",
    "unsupported",
)

# status codes and "oom" only as whole tokens ("4000 ms" is not a 400)
RETRYABLE_CODES = re.compile(r"\b(?:429|502|503|504)\b")
FATAL_CODES = re.compile(r"\b(?:400|401|403|404|405|422|oom)\b")


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 3
    initial_delay_ms: float = 100
    max_delay_ms: float = 5000
    backoff_multiplier: float = 2
    use_exponential_backoff: bool = True


@dataclass
class RetryResult(Generic[T]):
    success: bool
    result: Optional[T] = None
    error: Optional[BaseException] = None
    attempts: int = 0
    total_duration_ms: float = 0.0


def is_retryable_error(error: Any) -> bool:
    if not isinstance(error, BaseException):
        return False
    combined = f"{type(error).__name__}: {error}".lower()
    if FATAL_CODES.search(combined) or any(p in combined for p in FATAL_PATTERNS):
        return False
    return bool(RETRYABLE_CODES.search(combined)) or any(p in combined for p in RETRYABLE_PATTERNS)


def calculate_delay(attempt: int, config: Optional[RetryConfig] = None) -> float:
    """Delay in ms before retry number *attempt* (1-based)."""
    cfg = config or RetryConfig()
    if not cfg.use_exponential_backoff:
        return min(cfg.initial_delay_ms, cfg.max_delay_ms)
    delay = cfg.initial_delay_ms * cfg.backoff_multiplier ** (attempt - 1)
    return min(delay, cfg.max_delay_ms)


def with_retry(
    fn: Callable[[], T],
    config: Optional[RetryConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryResult[T]:
    """
    Call *fn* until it succeeds, fails fatally or retries run out.

    Args:
        fn: Zero-argument callable (e.g. a closure over the model call).
        config: Retry policy.
        sleep: Sleep function taking seconds (injectable for tests).

    Returns:
        RetryResult with the value or the last error and the attempt count.
    """
    cfg = config or RetryConfig()
    t0 = time.monotonic()
    last_error: Optional[BaseException] = None
    attempts = 0

    while attempts <= cfg.max_retries:
        attempts += 1
        try:
            value = fn()
        except Exception as e:
            last_error = e
            if not is_retryable_error(e):
                logger.error("Inference failed with non-retryable %s (attempt %d)",
                             type(e).__name__, attempts)
                break
            if attempts > cfg.max_retries:
                break
            delay_ms = calculate_delay(attempts, cfg)
            logger.warning("Transient %s on attempt %d, retrying in %.0f ms",
                           type(e).__name__, attempts, delay_ms)
            sleep(delay_ms / 1000.0)
        else:
            return RetryResult(
                success=True,
                result=value,
                attempts=attempts,
                total_duration_ms=(time.monotonic() - t0) * 1000,
            )

    return RetryResult(
        success=False,
        error=last_error,
        attempts=attempts,
        total_duration_ms=(time.monotonic() - t0) * 1000,
    )


class MLRetryHandler:
    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or RetryConfig(max_retries=settings.ML_MAX_RETRIES)
        self._sleep = sleep

    def execute(self, fn: Callable[[], T]) -> RetryResult[T]:
        return with_retry(fn, self.config, self._sleep)

    def is_retryable(self, error: Any) -> bool:
        return is_retryable_error(error)

    def get_config(self) -> RetryConfig:
        return self.config

    def configure(self, **changes) -> None:
        self.config = replace(self.config, **changes)
