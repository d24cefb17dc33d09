from __future__ import annotations

from enum import StrEnum


class BuildPhase(StrEnum):
    NEW = "New"
    PENDING = "Pending"
    RUNNING = "Running"
    COMPLETE = "Complete"
    FAILED = "Failed"
    ERROR = "Error"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether the build reached an end state on its own."""
        return self in _TERMINAL_PHASES


_TERMINAL_PHASES = frozenset(
    {BuildPhase.COMPLETE, BuildPhase.FAILED, BuildPhase.ERROR, BuildPhase.CANCELLED}
)


class BuildStrategyType(StrEnum):
    SOURCE = "Source"
    DOCKER = "Docker"
    CUSTOM = "Custom"


# Containers of the build pod that accept injected source
GIT_CLONE_CONTAINER = "git-clone"
CUSTOM_BUILD_CONTAINER = "custom-build"

# Resource kind reported by "not found" errors for a missing source image
IMAGE_STREAM_TAGS_KIND = "imagestreamtags"

BUILD_POD_SUFFIX = "build"
MAX_POD_NAME_LENGTH = 253

BUILD_TRIGGER_CAUSE_MANUAL_MSG = "Manually triggered"
NO_BUILD_LOGS_MESSAGE = "No logs are available."

BUILD_API_VERSION = "build.openshift.io/v1"
BUILD_KIND = "Build"
