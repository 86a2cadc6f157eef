"""
Bounded polling for asynchronous remote jobs.

One helper serves every "wait until the remote side is done" loop: the OCR
job wait and the caller-side classify retry loop. Polling is fixed-interval
with a hard attempt cap; exceptions raised by the probe propagate unless the
caller lists them as retryable.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class PollOutcome(Generic[T]):
    """Result of a bounded poll."""

    value: Optional[T]
    done: bool
    attempts: int


async def poll_until(
    probe: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    interval: float,
    max_attempts: int,
    retry_on: tuple[type[BaseException], ...] = (),
    description: str = "remote job",
) -> PollOutcome[T]:
    """
    Call ``probe`` until ``is_done`` accepts its value or attempts run out.

    Args:
        probe: Async callable returning the current state.
        is_done: Predicate marking a terminal state.
        interval: Seconds to wait between attempts.
        max_attempts: Hard cap on probe calls.
        retry_on: Exception types treated as "not done yet".
        description: Used in log lines.

    Returns:
        PollOutcome with the last probed value (None if the last attempt
        raised a retryable exception) and whether it was terminal.
    """
    condition = retry_if_result(lambda value: not is_done(value))
    if retry_on:
        condition = condition | retry_if_exception_type(retry_on)

    def _log_attempt(retry_state: RetryCallState) -> None:
        logger.info(
            f"Waiting on {description}: attempt {retry_state.attempt_number}/{max_attempts} "
            f"not finished, next check in {interval:.1f}s"
        )

    def _give_up(retry_state: RetryCallState) -> PollOutcome[T]:
        logger.warning(f"Gave up waiting on {description} after {retry_state.attempt_number} attempts")
        outcome = retry_state.outcome
        value = None if outcome is None or outcome.failed else outcome.result()
        return PollOutcome(value=value, done=False, attempts=retry_state.attempt_number)

    attempts = 0

    async def _counted_probe() -> T:
        nonlocal attempts
        attempts += 1
        return await probe()

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(interval),
        retry=condition,
        before_sleep=_log_attempt,
        retry_error_callback=_give_up,
    )
    result = await retrying(_counted_probe)
    if isinstance(result, PollOutcome):
        return result
    return PollOutcome(value=result, done=True, attempts=attempts)
