"""httpx-backed clients for the build API."""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from binbuild.core.config import InstantiateConfig
from binbuild.core.constants import BUILD_API_VERSION
from binbuild.core.exceptions import (
    APIConnectionError,
    APIStatusError,
    BinaryBuildError,
)
from binbuild.core.types import Build, BuildRequest
from binbuild.resilience.retry import RetryPolicy

logger = structlog.get_logger(__name__)

_BUILD_API_PREFIX = f"/apis/{BUILD_API_VERSION}"


def _builds_path(namespace: str, name: str) -> str:
    return f"{_BUILD_API_PREFIX}/namespaces/{namespace}/builds/{name}"


def _instantiate_path(namespace: str, name: str) -> str:
    return f"{_BUILD_API_PREFIX}/namespaces/{namespace}/buildconfigs/{name}/instantiate"


def _error_from_response(response: httpx.Response) -> APIStatusError:
    """Turn a non-2xx response into the matching typed error."""
    try:
        body = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = None
    if not isinstance(body, dict) or body.get("kind") != "Status":
        body = {
            "message": response.text or response.reason_phrase,
            "code": response.status_code,
        }
    return APIStatusError.from_status(body, response.status_code)


def _parse_build(data: Any) -> Build:
    try:
        return Build.from_versioned(data)
    except ValidationError as exc:
        raise BinaryBuildError(f"unable to decode build from server: {exc}") from exc


class ApiClient:
    """Thin wrapper over :class:`httpx.AsyncClient` for the API server.

    Usage::

        async with ApiClient(config) as api:
            builds = HttpBuildsClient(api)
            build = await builds.get("myproject", "app-1")
    """

    def __init__(
        self,
        config: InstantiateConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def config(self) -> InstantiateConfig:
        return self._config

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        return headers

    async def connect(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._config.api_url,
            headers=self._build_headers(),
            timeout=self._config.request_timeout,
            verify=self._config.verify_ssl,
            transport=self._transport,
        )
        logger.debug("api_client.connected", api_url=self._config.api_url)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("api_client.closed", api_url=self._config.api_url)

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON body.

        Raises:
            APIConnectionError: On transport failure (DNS, TCP, TLS, timeout).
            APIStatusError: The typed error for any non-2xx response.
        """
        if self._client is None:
            raise RuntimeError("ApiClient is not connected. Call connect() first.")
        try:
            response = await self._client.request(method, path, json=body)
        except httpx.TransportError as exc:
            raise APIConnectionError(f"{method} {path} failed: {exc}") from exc

        if not response.is_success:
            raise _error_from_response(response)
        result: dict[str, Any] = response.json()
        return result

    async def __aenter__(self) -> ApiClient:
        await self.connect()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()


class HttpBuildsClient:
    """:class:`~binbuild.client.base.BuildsClient` over the REST API.

    Reads are retried on connection errors with *retry_policy*; updates are
    sent once, since only the caller knows how to rebase a rejected write.
    """

    def __init__(self, api: ApiClient, retry_policy: RetryPolicy | None = None) -> None:
        self._api = api
        self._retry_policy = retry_policy

    async def _get_once(self, namespace: str, name: str) -> Build:
        data = await self._api.request("GET", _builds_path(namespace, name))
        return _parse_build(data)

    async def get(self, namespace: str, name: str) -> Build:
        if self._retry_policy is not None:
            return await self._retry_policy.execute(self._get_once, namespace, name)
        return await self._get_once(namespace, name)

    async def update(self, versioned: dict[str, Any]) -> Build:
        metadata = versioned.get("metadata") or {}
        path = _builds_path(metadata.get("namespace", ""), metadata.get("name", ""))
        data = await self._api.request("PUT", path, body=versioned)
        return _parse_build(data)


class HttpBuildGenerator:
    """:class:`~binbuild.client.base.BuildGenerator` calling the instantiate endpoint."""

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def instantiate(self, request: BuildRequest, namespace: str) -> Build:
        body: dict[str, Any] = {
            "apiVersion": BUILD_API_VERSION,
            "kind": "BuildRequest",
            "metadata": {"name": request.name, "namespace": namespace},
        }
        body.update(
            request.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"name"})
        )
        data = await self._api.request(
            "POST", _instantiate_path(namespace, request.name), body=body
        )
        return _parse_build(data)
