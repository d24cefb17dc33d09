"""Tests for core/types.py — build model, naming and time budget."""
from __future__ import annotations

import time

import pytest
from pydantic import ValidationError

from binbuild.core.constants import BuildPhase
from binbuild.core.types import (
    Build,
    BuildRequest,
    BuildStrategy,
    BuildTriggerCause,
    CustomBuildStrategy,
    ObjectMeta,
    TimeBudget,
    get_name,
    get_pod_name,
)


def _versioned(phase: str = "Running", **status: object) -> dict[str, object]:
    return {
        "apiVersion": "build.openshift.io/v1",
        "kind": "Build",
        "metadata": {"name": "app-1", "namespace": "myproject", "resourceVersion": "42"},
        "spec": {"strategy": {"type": "Source", "sourceStrategy": {"from": {"name": "ruby"}}}},
        "status": {"phase": phase, **status},
    }


# ---------------------------------------------------------------------------
# BuildPhase
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "phase", [BuildPhase.COMPLETE, BuildPhase.FAILED, BuildPhase.ERROR, BuildPhase.CANCELLED]
)
def test_terminal_phases(phase: BuildPhase) -> None:
    assert phase.is_terminal


@pytest.mark.parametrize("phase", [BuildPhase.NEW, BuildPhase.PENDING, BuildPhase.RUNNING])
def test_non_terminal_phases(phase: BuildPhase) -> None:
    assert not phase.is_terminal


# ---------------------------------------------------------------------------
# Build versioned representation
# ---------------------------------------------------------------------------


def test_from_versioned_parses_camel_case() -> None:
    build = Build.from_versioned(_versioned(reason="BuildError", message="boom"))
    assert build.name == "app-1"
    assert build.namespace == "myproject"
    assert build.metadata.resource_version == "42"
    assert build.phase is BuildPhase.RUNNING
    assert build.status.reason == "BuildError"


def test_from_versioned_rejects_unknown_phase() -> None:
    with pytest.raises(ValidationError):
        Build.from_versioned(_versioned(phase="Sleeping"))


def test_to_versioned_round_trips_resource_version_and_kind() -> None:
    build = Build.from_versioned(_versioned())
    out = build.to_versioned()
    assert out["apiVersion"] == "build.openshift.io/v1"
    assert out["kind"] == "Build"
    assert out["metadata"]["resourceVersion"] == "42"
    assert out["status"]["phase"] == "Running"
    assert out["status"]["cancelled"] is False
    assert out["spec"]["strategy"]["sourceStrategy"] == {"from": {"name": "ruby"}}


def test_to_versioned_keeps_undeclared_fields() -> None:
    owner = {"apiVersion": "build.openshift.io/v1", "kind": "BuildConfig", "name": "app"}
    env = [{"name": "BUILD_LOGLEVEL", "value": "5"}]
    data = {
        "apiVersion": "build.openshift.io/v1",
        "kind": "Build",
        "metadata": {
            "name": "app-1",
            "namespace": "myproject",
            "resourceVersion": "42",
            "creationTimestamp": "2024-05-01T10:00:00Z",
            "ownerReferences": [owner],
        },
        "spec": {
            "serviceAccount": "builder",
            "output": {"to": {"kind": "ImageStreamTag", "name": "app:latest"}},
            "strategy": {
                "type": "Custom",
                "customStrategy": {"from": {"kind": "DockerImage", "name": "builder"}, "env": env},
            },
        },
        "status": {
            "phase": "Running",
            "startTimestamp": "2024-05-01T10:00:05Z",
            "config": {"kind": "BuildConfig", "namespace": "myproject", "name": "app"},
        },
    }

    out = Build.from_versioned(data).to_versioned()

    assert out["metadata"]["creationTimestamp"] == "2024-05-01T10:00:00Z"
    assert out["metadata"]["ownerReferences"] == [owner]
    assert out["spec"]["serviceAccount"] == "builder"
    assert out["spec"]["output"] == {"to": {"kind": "ImageStreamTag", "name": "app:latest"}}
    assert out["spec"]["strategy"]["customStrategy"]["env"] == env
    assert out["spec"]["strategy"]["customStrategy"]["from"] == {
        "kind": "DockerImage",
        "name": "builder",
    }
    assert out["status"]["startTimestamp"] == "2024-05-01T10:00:05Z"
    assert out["status"]["config"] == data["status"]["config"]  # type: ignore[index]
    assert Build.from_versioned(out).to_versioned() == out


def test_custom_strategy_detection() -> None:
    plain = Build(metadata=ObjectMeta(name="b"))
    custom = Build(
        metadata=ObjectMeta(name="b"),
        spec={"strategy": BuildStrategy(type="Custom", custom_strategy=CustomBuildStrategy())},
    )
    assert plain.is_custom_strategy is False
    assert custom.is_custom_strategy is True


def test_custom_strategy_serializes_from_alias() -> None:
    strategy = CustomBuildStrategy.model_validate({"from": {"kind": "DockerImage"}})
    assert strategy.from_ == {"kind": "DockerImage"}
    assert strategy.model_dump(by_alias=True)["from"] == {"kind": "DockerImage"}


# ---------------------------------------------------------------------------
# BuildRequest
# ---------------------------------------------------------------------------


def test_build_request_is_frozen() -> None:
    request = BuildRequest(name="app")
    with pytest.raises(ValidationError):
        request.name = "other"  # type: ignore[misc]


def test_default_trigger_added_when_missing() -> None:
    request = BuildRequest(name="app").with_default_trigger()
    assert request.triggered_by == [BuildTriggerCause(message="Manually triggered")]


def test_default_trigger_keeps_existing_causes() -> None:
    cause = BuildTriggerCause(message="Image change")
    request = BuildRequest(name="app", triggered_by=[cause])
    assert request.with_default_trigger().triggered_by == [cause]


# ---------------------------------------------------------------------------
# Pod naming
# ---------------------------------------------------------------------------


def test_pod_name_appends_build_suffix() -> None:
    assert Build(metadata=ObjectMeta(name="app-1")).pod_name == "app-1-build"


def test_get_pod_name_short_names_unchanged() -> None:
    assert get_pod_name("ruby-hello-world-3", "build") == "ruby-hello-world-3-build"


def test_get_name_shortens_long_names_with_hash() -> None:
    base = "a" * 300
    name = get_name(base, "build", 253)
    assert len(name) == 253
    assert name.endswith("-build")
    # prefix, 8 hex digit hash, suffix
    prefix, digest, suffix = name.rsplit("-", 2)
    assert len(digest) == 8
    assert int(digest, 16) >= 0
    assert suffix == "build"
    assert prefix == "a" * (253 - 10 - len("build"))


def test_get_name_is_deterministic_and_distinguishes_bases() -> None:
    first = get_name("x" * 300 + "1", "build", 253)
    again = get_name("x" * 300 + "1", "build", 253)
    other = get_name("x" * 300 + "2", "build", 253)
    assert first == again
    assert first != other


def test_get_name_suffix_longer_than_limit() -> None:
    name = get_name("base", "s" * 20, 15)
    assert len(name) <= 15


def test_get_name_non_positive_limit() -> None:
    assert get_name("base", "build", 0) == ""


# ---------------------------------------------------------------------------
# TimeBudget
# ---------------------------------------------------------------------------


def test_time_budget_remaining_decreases() -> None:
    budget = TimeBudget(10.0)
    first = budget.remaining()
    time.sleep(0.01)
    assert budget.remaining() < first
    assert budget.elapsed() >= 0.01


def test_time_budget_remaining_never_negative() -> None:
    budget = TimeBudget(0.0)
    time.sleep(0.001)
    assert budget.remaining() == 0.0
    assert budget.expired
