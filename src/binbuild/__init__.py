"""binbuild: start builds from uploaded binaries and stream the payload in."""

from binbuild.__version__ import __version__

from binbuild.core.client import BinaryBuildClient
from binbuild.core.config import InstantiateConfig
from binbuild.core.constants import (
    CUSTOM_BUILD_CONTAINER,
    GIT_CLONE_CONTAINER,
    BuildPhase,
    BuildStrategyType,
)
from binbuild.core.exceptions import (
    APIConnectionError,
    APIStatusError,
    AttachError,
    BadRequestError,
    BinaryBuildError,
    BuildDeletedBeforeStartError,
    BuildDeletedError,
    BuildTimeoutError,
    ConfigurationError,
    ConflictError,
    InternalError,
    InvalidPhaseError,
    InvalidRequestError,
    NotFoundError,
    PollTimeoutError,
    StartTimeoutError,
    StreamingFailedError,
    TerminalPhaseError,
    WaitObservationError,
)
from binbuild.core.types import (
    BinaryBuildRequestOptions,
    BinaryBuildSource,
    Build,
    BuildRequest,
    BuildStatus,
    BuildStrategy,
    BuildTriggerCause,
    GitSourceRevision,
    ObjectMeta,
    SourceControlUser,
    SourceRevision,
    TimeBudget,
)
from binbuild.client.base import BuildGenerator, BuildsClient, PhaseTracker
from binbuild.client.tracker import PollingPhaseTracker
from binbuild.instantiate.guard import CancellationGuard
from binbuild.instantiate.handler import BinaryInstantiateHandler, BuildInstantiator
from binbuild.instantiate.launcher import BuildLauncher
from binbuild.instantiate.streamer import UploadStreamer, select_container
from binbuild.instantiate.waiter import PhaseWaiter
from binbuild.transport.base import AttachTarget, AttachTransport

__all__ = [
    "__version__",
    "BinaryBuildClient",
    "InstantiateConfig",
    # Model
    "BuildPhase",
    "BuildStrategyType",
    "GIT_CLONE_CONTAINER",
    "CUSTOM_BUILD_CONTAINER",
    "Build",
    "BuildStatus",
    "BuildStrategy",
    "ObjectMeta",
    "BuildRequest",
    "BinaryBuildRequestOptions",
    "BinaryBuildSource",
    "BuildTriggerCause",
    "GitSourceRevision",
    "SourceControlUser",
    "SourceRevision",
    "TimeBudget",
    # Collaborators
    "BuildsClient",
    "BuildGenerator",
    "PhaseTracker",
    "PollingPhaseTracker",
    "AttachTarget",
    "AttachTransport",
    # Flow
    "BinaryInstantiateHandler",
    "BuildInstantiator",
    "BuildLauncher",
    "PhaseWaiter",
    "UploadStreamer",
    "CancellationGuard",
    "select_container",
    # Errors
    "BinaryBuildError",
    "ConfigurationError",
    "APIStatusError",
    "APIConnectionError",
    "NotFoundError",
    "ConflictError",
    "BadRequestError",
    "BuildTimeoutError",
    "InternalError",
    "InvalidRequestError",
    "BuildDeletedError",
    "BuildDeletedBeforeStartError",
    "WaitObservationError",
    "StartTimeoutError",
    "TerminalPhaseError",
    "InvalidPhaseError",
    "StreamingFailedError",
    "AttachError",
    "PollTimeoutError",
]
