from __future__ import annotations

from collections import deque
from typing import Any

from binbuild.core.constants import BuildPhase
from binbuild.core.exceptions import ConflictError, NotFoundError
from binbuild.core.types import Build, BuildRequest


class MockBuildsClient:
    """In-memory build store with resourceVersion conflict detection.

    Usage::

        builds = MockBuildsClient()
        builds.add(build)
        builds.queue_phases("ns", "app-1", BuildPhase.PENDING, BuildPhase.RUNNING)
        builds.fail_next("update", ConflictError("stale"))

        latest = await builds.get("ns", "app-1")      # Pending
        latest = await builds.get("ns", "app-1")      # Running
    """

    def __init__(self) -> None:
        self._builds: dict[tuple[str, str], Build] = {}
        self._phase_queues: dict[tuple[str, str], deque[BuildPhase | None]] = {}
        self._errors: dict[str, deque[Exception]] = {"get": deque(), "update": deque()}
        self.calls: list[tuple[str, str]] = []
        self.updates: list[dict[str, Any]] = []

    # ------------------------------------------------------------------ #
    # Store manipulation
    # ------------------------------------------------------------------ #

    def add(self, build: Build) -> Build:
        if not build.metadata.resource_version:
            build = build.model_copy(deep=True)
            build.metadata.resource_version = "1"
        self._builds[(build.namespace, build.name)] = build
        return build

    def stored(self, namespace: str, name: str) -> Build | None:
        return self._builds.get((namespace, name))

    def delete(self, namespace: str, name: str) -> None:
        self._builds.pop((namespace, name), None)

    def set_phase(
        self,
        namespace: str,
        name: str,
        phase: BuildPhase,
        *,
        reason: str = "",
        message: str = "",
    ) -> None:
        """Advance the stored build the way its controller would."""
        current = self._builds[(namespace, name)].model_copy(deep=True)
        current.status.phase = phase
        current.status.reason = reason
        current.status.message = message
        self._store_next_version(current)

    def queue_phases(self, namespace: str, name: str, *phases: BuildPhase | None) -> None:
        """Apply one queued phase before each subsequent ``get`` of the build.

        A queued ``None`` deletes the build instead.
        """
        self._phase_queues.setdefault((namespace, name), deque()).extend(phases)

    def fail_next(self, method: str, exc: Exception) -> None:
        """Make the next call to *method* (``"get"`` or ``"update"``) raise *exc*."""
        self._errors[method].append(exc)

    def _store_next_version(self, build: Build) -> Build:
        build.metadata.resource_version = str(int(build.metadata.resource_version or "0") + 1)
        self._builds[(build.namespace, build.name)] = build
        return build

    # ------------------------------------------------------------------ #
    # BuildsClient implementation
    # ------------------------------------------------------------------ #

    async def get(self, namespace: str, name: str) -> Build:
        self.calls.append(("get", name))
        if self._errors["get"]:
            raise self._errors["get"].popleft()
        key = (namespace, name)
        queue = self._phase_queues.get(key)
        if queue and key in self._builds:
            phase = queue.popleft()
            if phase is None:
                self.delete(namespace, name)
            else:
                self.set_phase(namespace, name, phase)
        if key not in self._builds:
            raise NotFoundError(f'builds "{name}" not found', kind="builds", name=name)
        return self._builds[key].model_copy(deep=True)

    async def update(self, versioned: dict[str, Any]) -> Build:
        self.calls.append(("update", versioned["metadata"]["name"]))
        self.updates.append(versioned)
        if self._errors["update"]:
            raise self._errors["update"].popleft()
        build = Build.from_versioned(versioned)
        key = (build.namespace, build.name)
        if key not in self._builds:
            raise NotFoundError(f'builds "{build.name}" not found', kind="builds", name=build.name)
        current = self._builds[key]
        if build.metadata.resource_version != current.metadata.resource_version:
            raise ConflictError(
                f'Operation cannot be fulfilled on builds "{build.name}": '
                "the object has been modified; please apply your changes to the "
                "latest version and try again"
            )
        return self._store_next_version(build).model_copy(deep=True)

    def call_count(self, method: str) -> int:
        return sum(1 for m, _ in self.calls if m == method)


class MockBuildGenerator:
    """Scripted :class:`~binbuild.client.base.BuildGenerator`.

    Each ``instantiate`` call consumes the next registered outcome: a
    :class:`Build` is returned (and added to *builds* if given), an exception
    is raised.  The last outcome repeats once the script runs out.
    """

    def __init__(self, builds: MockBuildsClient | None = None) -> None:
        self._builds = builds
        self._outcomes: deque[Build | Exception] = deque()
        self.requests: list[tuple[BuildRequest, str]] = []

    def register(self, *outcomes: Build | Exception) -> None:
        self._outcomes.extend(outcomes)

    async def instantiate(self, request: BuildRequest, namespace: str) -> Build:
        self.requests.append((request, namespace))
        if not self._outcomes:
            raise AssertionError("MockBuildGenerator: no outcome registered")
        outcome = self._outcomes.popleft() if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if self._builds is not None:
            outcome = self._builds.add(outcome)
        return outcome.model_copy(deep=True)
