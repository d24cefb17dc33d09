from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from binbuild.core.constants import (
    BUILD_API_VERSION,
    BUILD_KIND,
    BUILD_POD_SUFFIX,
    BUILD_TRIGGER_CAUSE_MANUAL_MSG,
    MAX_POD_NAME_LENGTH,
    BuildPhase,
    BuildStrategyType,
)

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193


class _WireModel(BaseModel):
    """Base for models exchanged with the API server in camelCase.

    Fields a model does not declare are kept as extras and written back
    unchanged, so an object read from the server can be updated in place.
    """

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "allow"}


# ---------------------------------------------------------------------------
# Build request
# ---------------------------------------------------------------------------


class SourceControlUser(_WireModel):
    name: str = ""
    email: str = ""


class GitSourceRevision(_WireModel):
    commit: str = ""
    author: SourceControlUser = Field(default_factory=SourceControlUser)
    committer: SourceControlUser = Field(default_factory=SourceControlUser)
    message: str = ""


class SourceRevision(_WireModel):
    type: str = "Git"
    git: GitSourceRevision | None = None


class BinaryBuildSource(_WireModel):
    as_file: str = ""
    """Name of the file the payload is stored as inside the build context.

    Empty means the payload is an archive extracted into the context.
    """


class BuildTriggerCause(_WireModel):
    message: str = BUILD_TRIGGER_CAUSE_MANUAL_MSG


class BuildRequest(_WireModel):
    """Input to the build generator describing the build to instantiate."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "allow",
        "frozen": True,
    }

    name: str
    revision: SourceRevision | None = None
    binary: BinaryBuildSource | None = None
    triggered_by: list[BuildTriggerCause] = Field(default_factory=list)

    def with_default_trigger(self) -> BuildRequest:
        """Return a copy carrying a manual trigger cause when none is set."""
        if self.triggered_by:
            return self
        return self.model_copy(update={"triggered_by": [BuildTriggerCause()]})


class BinaryBuildRequestOptions(_WireModel):
    """Options accepted alongside a binary upload."""

    name: str = ""
    as_file: str = ""
    commit: str = ""
    message: str = ""
    author_name: str = ""
    author_email: str = ""
    committer_name: str = ""
    committer_email: str = ""


# ---------------------------------------------------------------------------
# Build resource
# ---------------------------------------------------------------------------


class ObjectMeta(_WireModel):
    name: str
    namespace: str = ""
    resource_version: str = ""
    uid: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class CustomBuildStrategy(_WireModel):
    from_: dict[str, Any] = Field(default_factory=dict, alias="from")
    expose_docker_socket: bool = False


class BuildStrategy(_WireModel):
    type: BuildStrategyType = BuildStrategyType.SOURCE
    source_strategy: dict[str, Any] | None = None
    docker_strategy: dict[str, Any] | None = None
    custom_strategy: CustomBuildStrategy | None = None


class BuildSpec(_WireModel):
    strategy: BuildStrategy = Field(default_factory=BuildStrategy)
    source: dict[str, Any] = Field(default_factory=dict)
    revision: SourceRevision | None = None
    triggered_by: list[BuildTriggerCause] = Field(default_factory=list)


class BuildStatus(_WireModel):
    phase: BuildPhase = BuildPhase.NEW
    reason: str = ""
    message: str = ""
    cancelled: bool = False


class Build(_WireModel):
    """Point-in-time snapshot of a build resource.

    The authoritative object lives in the API server; a snapshot is never
    assumed current and must be re-fetched before a conditional update.
    """

    metadata: ObjectMeta
    spec: BuildSpec = Field(default_factory=BuildSpec)
    status: BuildStatus = Field(default_factory=BuildStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def phase(self) -> BuildPhase:
        return self.status.phase

    @property
    def is_custom_strategy(self) -> bool:
        return self.spec.strategy.custom_strategy is not None

    @property
    def pod_name(self) -> str:
        """Name of the pod that executes this build."""
        return get_pod_name(self.metadata.name, BUILD_POD_SUFFIX)

    def to_versioned(self) -> dict[str, Any]:
        """Serialize to the external ``build.openshift.io/v1`` representation."""
        body: dict[str, Any] = {"apiVersion": BUILD_API_VERSION, "kind": BUILD_KIND}
        body.update(self.model_dump(mode="json", by_alias=True, exclude_none=True))
        return body

    @classmethod
    def from_versioned(cls, data: dict[str, Any]) -> Build:
        """Parse an external representation, ignoring ``apiVersion``/``kind``."""
        payload = {k: v for k, v in data.items() if k not in ("apiVersion", "kind")}
        return cls.model_validate(payload)


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def _fnv32a(value: str) -> str:
    h = _FNV32_OFFSET
    for byte in value.encode("utf-8"):
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return f"{h:08x}"


def get_name(base: str, suffix: str, max_length: int) -> str:
    """Join *base* and *suffix*, shortening with a hash to fit *max_length*.

    The result is deterministic: the same inputs always give the same name,
    and two long bases that share a prefix still get distinct names.
    """
    if max_length <= 0:
        return ""
    name = f"{base}-{suffix}"
    if len(name) <= max_length:
        return name

    base_length = max_length - 10 - len(suffix)
    if base_length < 0:
        # suffix alone does not fit
        prefix = base[: min(len(base), max(0, max_length - 9))]
        short_name = f"{prefix}-{_fnv32a(name)}"
        return short_name[: min(max_length, len(short_name))]

    return f"{base[:base_length]}-{_fnv32a(base)}-{suffix}"


def get_pod_name(base: str, suffix: str) -> str:
    return get_name(base, suffix, MAX_POD_NAME_LENGTH)


# ---------------------------------------------------------------------------
# Time budget
# ---------------------------------------------------------------------------


class TimeBudget:
    """A single wall-clock deadline shared by every step of one request.

    Example::

        budget = TimeBudget(300.0)
        build = await launcher.launch(request, namespace, budget)
        latest = await waiter.wait_for_running(build, budget.remaining(), guard)
    """

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self._start = time.monotonic()

    def elapsed(self) -> float:
        return time.monotonic() - self._start

    def remaining(self) -> float:
        return max(0.0, self.timeout - self.elapsed())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def __repr__(self) -> str:
        return f"TimeBudget(timeout={self.timeout}, elapsed={self.elapsed():.3f})"
