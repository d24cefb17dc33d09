"""Binary build instantiation: launch, wait for Running, upload, clean up."""

from __future__ import annotations

import structlog

from binbuild.client.base import BuildGenerator, BuildsClient, PhaseTracker
from binbuild.core.config import InstantiateConfig
from binbuild.core.exceptions import InvalidRequestError
from binbuild.core.types import (
    BinaryBuildRequestOptions,
    BinaryBuildSource,
    Build,
    BuildRequest,
    GitSourceRevision,
    SourceControlUser,
    SourceRevision,
    TimeBudget,
)
from binbuild.instantiate.guard import CancellationGuard
from binbuild.instantiate.launcher import BuildLauncher
from binbuild.instantiate.streamer import UploadStreamer
from binbuild.instantiate.waiter import PhaseWaiter
from binbuild.transport.base import AttachTransport, PayloadSource
from binbuild.utils.logging import build_log_context

logger = structlog.get_logger(__name__)

_FORBIDDEN_FILE_CHARS = ("/", "\\", ":")


def validate_binary_options(options: BinaryBuildRequestOptions) -> None:
    """Reject binary build options the build generator cannot use.

    Raises:
        InvalidRequestError: On a missing name or an ``as_file`` that is not
            a plain file name.
    """
    if not options.name:
        raise InvalidRequestError("name: Required value: name is required")
    as_file = options.as_file
    if as_file and (
        any(ch in as_file for ch in _FORBIDDEN_FILE_CHARS) or as_file in (".", "..")
    ):
        raise InvalidRequestError(
            f"asFile: Invalid value: {as_file!r}: file name may not contain slashes "
            "or relative path segments and must be a valid POSIX filename",
            details={"field": "asFile"},
        )


def build_request_from_options(options: BinaryBuildRequestOptions) -> BuildRequest:
    """Translate upload options into a build request.

    Commit metadata is attached only when a commit id was given.
    """
    revision: SourceRevision | None = None
    if options.commit:
        revision = SourceRevision(
            git=GitSourceRevision(
                commit=options.commit,
                message=options.message,
                author=SourceControlUser(name=options.author_name, email=options.author_email),
                committer=SourceControlUser(
                    name=options.committer_name, email=options.committer_email
                ),
            )
        )
    request = BuildRequest(
        name=options.name,
        revision=revision,
        binary=BinaryBuildSource(as_file=options.as_file),
    )
    return request.with_default_trigger()


class BuildInstantiator:
    """Instantiates a build from a build config without a payload."""

    def __init__(self, generator: BuildGenerator) -> None:
        self._generator = generator

    async def instantiate(self, namespace: str, request: BuildRequest) -> Build:
        return await self._generator.instantiate(request.with_default_trigger(), namespace)


class BinaryInstantiateHandler:
    """Runs one binary build request end to end.

    The cancellation guard is armed before the build is launched; it stays
    armed unless the build ends on its own before the upload, or the upload
    succeeds.

    Example::

        handler = BinaryInstantiateHandler(
            generator=generator,
            builds=builds,
            tracker=PollingPhaseTracker(builds),
            transport=WebSocketAttachTransport(config.api_url, config.token),
            config=config,
        )
        build = await handler.handle("myproject", "app", options, payload)
    """

    def __init__(
        self,
        *,
        generator: BuildGenerator,
        builds: BuildsClient,
        tracker: PhaseTracker,
        transport: AttachTransport,
        config: InstantiateConfig | None = None,
    ) -> None:
        self._config = config or InstantiateConfig()
        self._builds = builds
        self.launcher = BuildLauncher(generator, poll_interval=self._config.launch_poll_interval)
        self.waiter = PhaseWaiter(tracker, timeout=self._config.timeout)
        self.streamer = UploadStreamer(transport)

    def new_guard(self) -> CancellationGuard:
        return CancellationGuard(
            self._builds,
            poll_interval=self._config.cancel_poll_interval,
            poll_duration=self._config.cancel_poll_duration,
        )

    async def handle(
        self,
        namespace: str,
        name: str,
        options: BinaryBuildRequestOptions,
        payload: PayloadSource,
    ) -> Build:
        """Instantiate build config *name* and upload *payload* into the new build.

        Returns:
            The latest snapshot of the build after the upload completed.

        Raises:
            BinaryBuildError: One of the flow errors; its ``status_code`` is
                the HTTP status to report.
        """
        options = options.model_copy(update={"name": name})
        validate_binary_options(options)
        request = build_request_from_options(options)

        budget = TimeBudget(self._config.timeout)
        with build_log_context(namespace=namespace, build_config=name):
            async with self.new_guard() as guard:
                build = await self.launcher.launch(request, namespace, budget)
                guard.track(build)
                latest = await self.waiter.wait_for_running(build, budget.remaining(), guard)
                result = await self.streamer.stream(build, latest, payload, guard)

            logger.info("binary_build_started", build=result.name, elapsed=round(budget.elapsed(), 3))
            return result
