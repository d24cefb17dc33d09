from __future__ import annotations

import structlog

from binbuild.client.base import BuildGenerator
from binbuild.core.constants import IMAGE_STREAM_TAGS_KIND
from binbuild.core.exceptions import BuildTimeoutError, NotFoundError, PollTimeoutError
from binbuild.core.types import Build, BuildRequest, TimeBudget
from binbuild.resilience.polling import poll_until

logger = structlog.get_logger(__name__)


class BuildLauncher:
    """Creates the build, waiting out a source image that does not exist yet.

    A "not found" for ``imagestreamtags`` usually means another process is
    still pushing the image the build starts from, so the generator is
    called again every *poll_interval* seconds until the request budget runs
    out.  Every other error ends the launch immediately.
    """

    def __init__(self, generator: BuildGenerator, *, poll_interval: float = 1.0) -> None:
        self._generator = generator
        self._poll_interval = poll_interval

    async def launch(self, request: BuildRequest, namespace: str, budget: TimeBudget) -> Build:
        created: list[Build] = []
        attempts = 0

        async def _attempt() -> bool:
            nonlocal attempts
            attempts += 1
            try:
                created.append(await self._generator.instantiate(request, namespace))
            except NotFoundError as exc:
                if exc.kind != IMAGE_STREAM_TAGS_KIND:
                    raise
                logger.debug(
                    "launch_waiting_for_image",
                    build_config=request.name,
                    attempt=attempts,
                    error=str(exc),
                )
                return False
            return True

        try:
            await poll_until(_attempt, interval=self._poll_interval, timeout=budget.remaining())
        except PollTimeoutError as exc:
            raise BuildTimeoutError(
                f"timed out waiting for build config {request.name} to instantiate "
                f"after {budget.timeout:g}s"
            ) from exc
        except Exception as exc:
            logger.info(
                "launch_failed",
                build_config=request.name,
                attempt=attempts,
                error=str(exc),
            )
            raise

        build = created[0]
        logger.info(
            "build_launched",
            build=build.name,
            attempts=attempts,
            elapsed=round(budget.elapsed(), 3),
        )
        return build
