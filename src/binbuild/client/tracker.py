from __future__ import annotations

import structlog

from binbuild.client.base import BuildsClient
from binbuild.core.constants import BuildPhase
from binbuild.core.exceptions import BuildDeletedError, NotFoundError, PollTimeoutError
from binbuild.core.types import Build
from binbuild.resilience.polling import poll_until

logger = structlog.get_logger(__name__)


class PollingPhaseTracker:
    """:class:`~binbuild.client.base.PhaseTracker` that re-reads the build on a timer.

    Running and every terminal phase end the wait; New and Pending keep it
    going.  A build that disappears after it has been read once was deleted;
    a build that cannot be read at all is an ordinary read error.
    """

    def __init__(self, builds: BuildsClient, *, interval: float = 1.0) -> None:
        self._builds = builds
        self._interval = interval

    async def wait_for_running_build(
        self, namespace: str, name: str, timeout: float
    ) -> tuple[Build | None, bool]:
        observed: Build | None = None

        async def _check() -> bool:
            nonlocal observed
            try:
                build = await self._builds.get(namespace, name)
            except NotFoundError as exc:
                if observed is None:
                    raise
                raise BuildDeletedError(f"build {name} was deleted") from exc
            observed = build
            if build.phase in (BuildPhase.NEW, BuildPhase.PENDING):
                logger.debug(
                    "build_not_running", namespace=namespace, build=name, phase=str(build.phase)
                )
                return False
            return True

        try:
            await poll_until(_check, interval=self._interval, timeout=timeout)
        except PollTimeoutError:
            return observed, False
        return observed, True
