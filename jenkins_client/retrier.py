import asyncio
from typing import Awaitable, Callable

from loguru import logger

from jenkins_client.deadline import Deadline
from jenkins_client.errors import DeadlineExceededError

# A probe returns True while the server-side state is still pending
Probe = Callable[[], Awaitable[bool]]


async def retry_until_done(deadline: Deadline, retry_interval: float, probe: Probe) -> None:
    """Await the probe until it reports done, raises, or the deadline passes.

    The first probe runs immediately. Exceptions raised by the probe are
    never retried and propagate unchanged. Between attempts the engine
    sleeps for retry_interval, or only until the deadline when that comes
    first, in which case DeadlineExceededError is raised. A retry_interval
    of 0 polls back to back, bounded only by the deadline.

    A probe that always reports still-waiting ends only through the
    deadline; choosing a sensible deadline is up to the caller. Cancelling
    the awaiting task aborts the sleep and any in-flight probe at once.
    """
    if retry_interval < 0:
        raise ValueError(f"retry_interval must be >= 0, got {retry_interval}")

    attempt = 1
    while await probe():
        remaining = deadline.remaining()
        if retry_interval >= remaining:
            logger.debug(
                f"Attempt {attempt} still waiting, deadline reached in {remaining:.3f}s"
            )
            await asyncio.sleep(remaining)
            raise DeadlineExceededError(
                f"Deadline exceeded after {attempt} attempt(s) while still waiting"
            )

        logger.debug(
            f"Attempt {attempt} still waiting, retrying in {retry_interval:.3f}s"
        )
        await asyncio.sleep(retry_interval)
        attempt += 1
