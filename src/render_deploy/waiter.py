"""Deploy Waiter: polls a deploy until it is live, failed or the deadline passes."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol

from pydantic import BaseModel, ConfigDict

from render_deploy.errors import RenderAPIError
from render_deploy.logging_config import bind_deploy_context, get_logger
from render_deploy.outcome import DeployedSuccessfully, DeployFailed, Outcome, TimedOut
from render_deploy.schemas import Deploy, DeployHandle
from render_deploy.status import StatusClass, classify, is_recognized

logger = get_logger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


class DeployStatusSource(Protocol):
    async def get_deploy(self, service_id: str, deploy_id: str) -> Deploy: ...


class PollEvent(BaseModel):
    """One status check, as reported to the ``on_poll`` observer."""

    model_config = ConfigDict(frozen=True)

    attempt: int
    elapsed: float
    status: str | None = None
    status_class: StatusClass | None = None
    recognized: bool = True
    error: str | None = None


class DeployWaiter:
    """Blocks until a deploy reaches a terminal status or ``timeout`` elapses.

    Polls are strictly sequential. The first terminal status observed ends the
    wait; no request is issued after it. Errors on individual polls are
    tolerated until the deadline, since a late answer is safer than a false
    failure.

    ``sleep`` and ``clock`` default to ``asyncio.sleep`` and the running loop's
    monotonic clock and can be replaced in tests.
    """

    def __init__(
        self,
        client: DeployStatusSource,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        clock: Callable[[], float] | None = None,
        on_poll: Callable[[PollEvent], None] | None = None,
    ):
        if poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        self.client = client
        self.poll_interval = poll_interval
        self._sleep = sleep or asyncio.sleep
        self._clock = clock
        self._on_poll = on_poll

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    def _notify(self, event: PollEvent) -> None:
        if self._on_poll is not None:
            self._on_poll(event)

    async def wait(self, handle: DeployHandle, timeout: float) -> Outcome:
        """Poll ``handle`` until it is terminal or ``timeout`` seconds pass."""
        if timeout < 0:
            raise ValueError("timeout must be >= 0")

        bind_deploy_context(handle.service_id, handle.deploy_id)
        start = self._now()
        deadline = start + timeout
        attempt = 0
        last_status: str | None = None
        last_error: str | None = None

        logger.info("deploy_wait_started", timeout=timeout, poll_interval=self.poll_interval)

        while True:
            attempt += 1
            try:
                deploy = await self.client.get_deploy(handle.service_id, handle.deploy_id)
            except RenderAPIError as e:
                last_error = str(e)
                logger.warning(
                    "deploy_poll_failed",
                    attempt=attempt,
                    error=last_error,
                    error_type=type(e).__name__,
                )
                self._notify(
                    PollEvent(attempt=attempt, elapsed=self._now() - start, error=last_error)
                )
            else:
                last_status = deploy.status
                status_class = classify(deploy.status)
                recognized = is_recognized(deploy.status)
                if not recognized:
                    logger.warning("deploy_status_unrecognized", status=deploy.status)
                self._notify(
                    PollEvent(
                        attempt=attempt,
                        elapsed=self._now() - start,
                        status=deploy.status,
                        status_class=status_class,
                        recognized=recognized,
                    )
                )

                if status_class is StatusClass.SUCCESS:
                    elapsed = self._now() - start
                    logger.info("deploy_live", attempts=attempt, elapsed=elapsed)
                    return DeployedSuccessfully(handle=handle, deploy=deploy, elapsed=elapsed)

                if status_class is StatusClass.FAILURE:
                    elapsed = self._now() - start
                    logger.info(
                        "deploy_stopped", status=deploy.status, attempts=attempt, elapsed=elapsed
                    )
                    return DeployFailed(
                        handle=handle, reason=deploy.status, deploy=deploy, elapsed=elapsed
                    )

            now = self._now()
            if now >= deadline:
                logger.warning(
                    "deploy_wait_timed_out",
                    attempts=attempt,
                    last_status=last_status,
                    last_error=last_error,
                )
                return TimedOut(
                    handle=handle,
                    last_status=last_status,
                    last_error=last_error,
                    elapsed=now - start,
                )

            logger.debug(
                "deploy_waiting",
                attempt=attempt,
                status=last_status,
                poll_interval=self.poll_interval,
            )
            await self._sleep(self.poll_interval)
