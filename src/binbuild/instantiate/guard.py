"""Best-effort cancellation of a build whose upload never completed."""

from __future__ import annotations

from typing import Any

import structlog

from binbuild.client.base import BuildsClient
from binbuild.core.exceptions import PollTimeoutError
from binbuild.core.types import Build
from binbuild.resilience.retry import retry_on_conflict

logger = structlog.get_logger(__name__)


class CancellationGuard:
    """Cancels the tracked build on scope exit unless disarmed.

    The guard is armed when the ``async with`` block is entered.  Steps of
    the flow record the newest snapshot with :meth:`track` and switch the
    cleanup off with :meth:`disarm` once the build no longer needs it (it
    ended on its own, or the upload succeeded).  Cleanup failures are logged
    and swallowed; an exception leaving the block is never replaced.

    Example::

        async with CancellationGuard(builds) as guard:
            build = await launcher.launch(request, namespace, budget)
            guard.track(build)
            ...
            guard.disarm()
    """

    def __init__(
        self,
        builds: BuildsClient,
        *,
        poll_interval: float = 0.5,
        poll_duration: float = 30.0,
    ) -> None:
        self._builds = builds
        self._poll_interval = poll_interval
        self._poll_duration = poll_duration
        self._snapshot: Build | None = None
        self.armed = False

    @property
    def snapshot(self) -> Build | None:
        return self._snapshot

    def track(self, build: Build) -> None:
        self._snapshot = build

    def disarm(self) -> None:
        self.armed = False

    async def __aenter__(self) -> CancellationGuard:
        self.armed = True
        return self

    async def __aexit__(self, *_: Any) -> None:
        if not self.armed or self._snapshot is None:
            return
        await self.cancel_build(self._snapshot)

    async def cancel_build(self, build: Build) -> bool:
        """Mark *build* cancelled, rebasing onto the stored version on conflict.

        Returns ``True`` when the update was accepted.  Never raises.
        """
        versioned = build.to_versioned()

        async def _mutate() -> None:
            versioned.setdefault("status", {})["cancelled"] = True
            await self._builds.update(versioned)

        async def _refresh() -> None:
            nonlocal versioned
            latest = await self._builds.get(build.namespace, build.name)
            versioned = latest.to_versioned()

        try:
            await retry_on_conflict(
                _mutate,
                _refresh,
                interval=self._poll_interval,
                timeout=self._poll_duration,
            )
        except PollTimeoutError:
            logger.warning(
                "cancel_build_timeout",
                build=build.name,
                namespace=build.namespace,
                duration=self._poll_duration,
            )
            return False
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "cancel_build_failed",
                build=build.name,
                namespace=build.namespace,
                error=str(exc),
            )
            return False

        logger.info("build_cancelled", build=build.name, namespace=build.namespace)
        return True
