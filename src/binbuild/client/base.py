from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from binbuild.core.types import Build, BuildRequest


@runtime_checkable
class BuildsClient(Protocol):
    """Optimistic-concurrency access to stored builds.

    ``update`` must fail with :class:`~binbuild.core.exceptions.ConflictError`
    when the ``resourceVersion`` of the submitted object is stale.
    """

    async def get(self, namespace: str, name: str) -> Build: ...

    async def update(self, versioned: dict[str, Any]) -> Build: ...


@runtime_checkable
class BuildGenerator(Protocol):
    """Creates a build from a build config.

    Rejections are raised as typed API errors; a missing source image
    surfaces as ``NotFoundError(kind="imagestreamtags")``.
    """

    async def instantiate(self, request: BuildRequest, namespace: str) -> Build: ...


@runtime_checkable
class PhaseTracker(Protocol):
    """Waits for a build to leave the New/Pending phases.

    Returns ``(latest, True)`` once the build is Running or terminal and
    ``(last_observed, False)`` on timeout.  Raises
    :class:`~binbuild.core.exceptions.BuildDeletedError` if the build
    disappears while waiting.
    """

    async def wait_for_running_build(
        self, namespace: str, name: str, timeout: float
    ) -> tuple[Build | None, bool]: ...
