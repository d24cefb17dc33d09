from __future__ import annotations

from typing import Any

from binbuild.client.http import ApiClient, HttpBuildGenerator, HttpBuildsClient
from binbuild.client.tracker import PollingPhaseTracker
from binbuild.core.config import InstantiateConfig
from binbuild.core.types import BinaryBuildRequestOptions, Build, BuildRequest
from binbuild.instantiate.handler import BinaryInstantiateHandler, BuildInstantiator
from binbuild.transport.base import AttachTransport, PayloadSource
from binbuild.transport.websocket import WebSocketAttachTransport


class BinaryBuildClient:
    """Top-level client that starts builds from uploaded payloads.

    Create via the :meth:`connect` factory method::

        client = await BinaryBuildClient.connect(api_url="https://api:6443", token="...")
        build = await client.instantiate_binary(
            "myproject", "app", BinaryBuildRequestOptions(as_file="app.jar"), payload
        )

    Or use as an async context manager::

        async with await BinaryBuildClient.connect() as client:
            ...
    """

    def __init__(
        self,
        *,
        config: InstantiateConfig,
        api: ApiClient,
        transport: AttachTransport | None = None,
    ) -> None:
        self._config = config
        self._api = api
        builds = HttpBuildsClient(api, retry_policy=config.effective_retry_policy())
        generator = HttpBuildGenerator(api)
        self._instantiator = BuildInstantiator(generator)
        self._handler = BinaryInstantiateHandler(
            generator=generator,
            builds=builds,
            tracker=PollingPhaseTracker(builds, interval=config.phase_poll_interval),
            transport=transport
            or WebSocketAttachTransport(
                config.api_url,
                config.token,
                verify_ssl=config.verify_ssl,
                connect_timeout=config.request_timeout,
            ),
            config=config,
        )

    @classmethod
    async def connect(cls, **kwargs: Any) -> BinaryBuildClient:
        """Build a connected client.

        Any :class:`InstantiateConfig` field can be passed as a keyword
        argument; when none are given the configuration is read from the
        ``BINBUILD_*`` environment variables.
        """
        config_fields = set(InstantiateConfig.model_fields)
        config_kwargs = {k: v for k, v in kwargs.items() if k in config_fields}
        config = InstantiateConfig(**config_kwargs) if config_kwargs else InstantiateConfig.from_env()

        api = ApiClient(config)
        await api.connect()
        return cls(config=config, api=api)

    @property
    def config(self) -> InstantiateConfig:
        return self._config

    @property
    def handler(self) -> BinaryInstantiateHandler:
        return self._handler

    async def instantiate(self, namespace: str, request: BuildRequest) -> Build:
        return await self._instantiator.instantiate(namespace, request)

    async def instantiate_binary(
        self,
        namespace: str,
        name: str,
        options: BinaryBuildRequestOptions,
        payload: PayloadSource,
    ) -> Build:
        return await self._handler.handle(namespace, name, options, payload)

    async def close(self) -> None:
        await self._api.close()

    async def __aenter__(self) -> BinaryBuildClient:
        await self._api.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
