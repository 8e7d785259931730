"""Retry policy for idempotent store calls."""
from tenacity import Retrying, stop_after_attempt, wait_exponential


def store_retrying(attempts: int) -> Retrying:
    """Exponential backoff, re-raising the last error once attempts run out."""
    return Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        reraise=True,
    )
