"""Tests for instantiate/launcher.py — BuildLauncher."""
from __future__ import annotations

import time

import pytest

from binbuild.client.mock import MockBuildGenerator
from binbuild.core.exceptions import BadRequestError, BuildTimeoutError, NotFoundError
from binbuild.core.types import Build, BuildRequest, ObjectMeta, TimeBudget
from binbuild.instantiate.launcher import BuildLauncher


def _build(name: str = "app-1") -> Build:
    return Build(metadata=ObjectMeta(name=name, namespace="myproject"))


def _missing_tag() -> NotFoundError:
    return NotFoundError(
        'imagestreamtags.image.openshift.io "ruby:2.7" not found',
        kind="imagestreamtags",
        name="ruby:2.7",
    )


async def test_launch_returns_created_build() -> None:
    generator = MockBuildGenerator()
    generator.register(_build())
    launcher = BuildLauncher(generator, poll_interval=0.01)

    build = await launcher.launch(BuildRequest(name="app"), "myproject", TimeBudget(1.0))

    assert build.name == "app-1"
    assert len(generator.requests) == 1
    request, namespace = generator.requests[0]
    assert request.name == "app"
    assert namespace == "myproject"


async def test_launch_with_spent_budget_still_tries_once() -> None:
    generator = MockBuildGenerator()
    generator.register(_build())
    launcher = BuildLauncher(generator, poll_interval=0.01)

    build = await launcher.launch(BuildRequest(name="app"), "myproject", TimeBudget(0.0))

    assert build.name == "app-1"
    assert len(generator.requests) == 1


async def test_launch_absorbs_missing_image_stream_tag() -> None:
    generator = MockBuildGenerator()
    generator.register(_missing_tag(), _missing_tag(), _missing_tag(), _build())
    launcher = BuildLauncher(generator, poll_interval=0.02)

    start = time.monotonic()
    build = await launcher.launch(BuildRequest(name="app"), "myproject", TimeBudget(5.0))
    elapsed = time.monotonic() - start

    assert build.name == "app-1"
    assert len(generator.requests) == 4
    # three failed polls, one interval apart, before the successful one
    assert 0.06 <= elapsed < 0.06 + 0.5


async def test_launch_fails_fast_on_other_not_found_kind() -> None:
    generator = MockBuildGenerator()
    generator.register(
        NotFoundError('buildconfigs "app" not found', kind="buildconfigs", name="app"),
        _build(),
    )
    launcher = BuildLauncher(generator, poll_interval=0.01)

    with pytest.raises(NotFoundError) as excinfo:
        await launcher.launch(BuildRequest(name="app"), "myproject", TimeBudget(1.0))

    assert excinfo.value.kind == "buildconfigs"
    assert len(generator.requests) == 1


async def test_launch_propagates_other_errors_verbatim() -> None:
    error = BadRequestError("build config app is paused")
    generator = MockBuildGenerator()
    generator.register(error)
    launcher = BuildLauncher(generator, poll_interval=0.01)

    with pytest.raises(BadRequestError) as excinfo:
        await launcher.launch(BuildRequest(name="app"), "myproject", TimeBudget(1.0))

    assert excinfo.value is error
    assert len(generator.requests) == 1


async def test_launch_times_out_within_budget_plus_one_interval() -> None:
    generator = MockBuildGenerator()
    generator.register(_missing_tag())
    launcher = BuildLauncher(generator, poll_interval=0.05)

    start = time.monotonic()
    with pytest.raises(BuildTimeoutError, match="app"):
        await launcher.launch(BuildRequest(name="app"), "myproject", TimeBudget(0.2))
    elapsed = time.monotonic() - start

    assert elapsed < 0.2 + 0.05 + 0.1
    assert len(generator.requests) >= 3
