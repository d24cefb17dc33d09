from __future__ import annotations

import structlog

from binbuild.core.constants import CUSTOM_BUILD_CONTAINER, GIT_CLONE_CONTAINER
from binbuild.core.exceptions import StreamingFailedError
from binbuild.core.types import Build
from binbuild.instantiate.guard import CancellationGuard
from binbuild.transport.base import AttachTarget, AttachTransport, PayloadSource

logger = structlog.get_logger(__name__)


def select_container(build: Build) -> str:
    """Return the container that receives injected source for *build*.

    Custom builds have no clone stage, so the source goes straight into
    their main container.
    """
    if build.is_custom_strategy:
        return CUSTOM_BUILD_CONTAINER
    return GIT_CLONE_CONTAINER


class UploadStreamer:
    """Copies the payload into a running build over one attach session."""

    def __init__(self, transport: AttachTransport) -> None:
        self._transport = transport

    async def stream(
        self,
        build: Build,
        latest: Build,
        payload: PayloadSource,
        guard: CancellationGuard,
    ) -> Build:
        target = AttachTarget(
            namespace=build.namespace,
            pod=build.pod_name,
            container=select_container(build),
            stdin=True,
        )
        try:
            await self._transport.stream(target, payload)
        except Exception as exc:
            logger.warning(
                "upload_failed",
                build=build.name,
                pod=target.pod,
                container=target.container,
                error=str(exc),
            )
            raise StreamingFailedError(
                f"Internal error occurred: unable to upload binary to build {build.name}: {exc}"
            ) from exc

        guard.disarm()
        logger.info("upload_complete", build=build.name, container=target.container)
        return latest
