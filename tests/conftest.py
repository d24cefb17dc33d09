"""Shared test fixtures."""
from __future__ import annotations

import pytest

from binbuild.client.mock import MockBuildGenerator, MockBuildsClient
from binbuild.client.tracker import PollingPhaseTracker
from binbuild.core.config import InstantiateConfig
from binbuild.instantiate.handler import BinaryInstantiateHandler
from binbuild.transport.mock import MockAttachTransport


@pytest.fixture
def fast_config() -> InstantiateConfig:
    """Config with every interval scaled down so flows finish in milliseconds."""
    return InstantiateConfig(
        timeout=0.5,
        launch_poll_interval=0.01,
        phase_poll_interval=0.01,
        cancel_poll_interval=0.01,
        cancel_poll_duration=0.2,
    )


@pytest.fixture
def builds() -> MockBuildsClient:
    return MockBuildsClient()


@pytest.fixture
def generator(builds: MockBuildsClient) -> MockBuildGenerator:
    return MockBuildGenerator(builds)


@pytest.fixture
def transport() -> MockAttachTransport:
    return MockAttachTransport()


@pytest.fixture
def handler(
    fast_config: InstantiateConfig,
    builds: MockBuildsClient,
    generator: MockBuildGenerator,
    transport: MockAttachTransport,
) -> BinaryInstantiateHandler:
    return BinaryInstantiateHandler(
        generator=generator,
        builds=builds,
        tracker=PollingPhaseTracker(builds, interval=fast_config.phase_poll_interval),
        transport=transport,
        config=fast_config,
    )
