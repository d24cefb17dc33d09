from __future__ import annotations

import structlog

from binbuild.client.base import PhaseTracker
from binbuild.core.constants import NO_BUILD_LOGS_MESSAGE, BuildPhase
from binbuild.core.exceptions import (
    BuildDeletedBeforeStartError,
    BuildDeletedError,
    InvalidPhaseError,
    StartTimeoutError,
    TerminalPhaseError,
    WaitObservationError,
)
from binbuild.core.types import Build
from binbuild.instantiate.guard import CancellationGuard

logger = structlog.get_logger(__name__)


def format_duration(seconds: float) -> str:
    """Render *seconds* as ``5m0s`` / ``2.5s``."""
    minutes, secs = divmod(seconds, 60)
    if minutes >= 1:
        return f"{int(minutes)}m{secs:g}s"
    return f"{secs:g}s"


class PhaseWaiter:
    """Gates the upload on the build reaching the Running phase.

    Error, Failed and Cancelled builds ended on their own, so the guard is
    disarmed before rejecting them.  Every other rejection leaves it armed.
    """

    def __init__(self, tracker: PhaseTracker, *, timeout: float) -> None:
        self._tracker = tracker
        self._timeout = timeout

    async def wait_for_running(
        self, build: Build, remaining: float, guard: CancellationGuard
    ) -> Build:
        name = build.name
        try:
            latest, ok = await self._tracker.wait_for_running_build(
                build.namespace, name, remaining
            )
        except BuildDeletedError as exc:
            raise BuildDeletedBeforeStartError(
                f"build {name} was deleted before it started: {NO_BUILD_LOGS_MESSAGE}"
            ) from exc
        except Exception as exc:
            raise WaitObservationError(f"unable to wait for build {name} to run: {exc}") from exc

        if latest is not None:
            guard.track(latest)
        if not ok or latest is None:
            raise StartTimeoutError(
                f"timed out waiting for build {name} to start after "
                f"{format_duration(self._timeout)}"
            )

        phase = latest.phase

        if phase == BuildPhase.RUNNING:
            return latest

        if phase == BuildPhase.ERROR:
            guard.disarm()
            message = f"build {name} encountered an error: {NO_BUILD_LOGS_MESSAGE}"
        elif phase == BuildPhase.FAILED:
            guard.disarm()
            message = f"build {name} failed: {latest.status.reason}: {latest.status.message}"
        elif phase == BuildPhase.CANCELLED:
            guard.disarm()
            message = f"build {name} was cancelled: {NO_BUILD_LOGS_MESSAGE}"
        else:
            logger.info("build_phase_rejected", build=name, phase=str(phase), cancel=True)
            raise InvalidPhaseError(f"cannot upload file to build {name} with status {phase}")

        logger.info("build_phase_rejected", build=name, phase=str(phase), cancel=False)
        raise TerminalPhaseError(message, details={"phase": str(phase)})
