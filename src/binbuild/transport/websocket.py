"""Pod attach over the Kubernetes websocket channel protocol.

Every binary frame starts with one channel byte:

    0 stdin    1 stdout    2 stderr    3 error (Status JSON)    255 close

``v5.channel.k8s.io`` lets the client half-close stdin with ``[255, 0]``;
with ``v4.channel.k8s.io`` the end of input is signalled by closing the
socket once the payload is written.
"""

from __future__ import annotations

import asyncio
import json
import logging
import ssl
from typing import Any

import websockets.exceptions
from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.typing import Subprotocol

from binbuild.core.exceptions import APIConnectionError, AttachError
from binbuild.transport.base import AttachTarget, PayloadSource, iter_payload

logger = logging.getLogger(__name__)

_STDIN_CHANNEL = 0
_STDOUT_CHANNEL = 1
_STDERR_CHANNEL = 2
_ERROR_CHANNEL = 3
_CLOSE_CHANNEL = 255

_V5_PROTOCOL = "v5.channel.k8s.io"
_V4_PROTOCOL = "v4.channel.k8s.io"
_SUBPROTOCOLS = [Subprotocol(_V5_PROTOCOL), Subprotocol(_V4_PROTOCOL)]

_DEFAULT_CHUNK_SIZE = 32 * 1024


def _ws_url(api_url: str, target: AttachTarget) -> str:
    base = api_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://") :]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://") :]
    return f"{base}{target.path}?{target.query}"


def _ssl_context(url: str, verify: bool) -> ssl.SSLContext | None:
    if not url.startswith("wss://"):
        return None
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


async def _open_connection(
    url: str,
    headers: dict[str, str],
    ssl_context: ssl.SSLContext | None,
    timeout: float,
) -> ClientConnection:
    """Open the attach websocket.  Isolated for easy mocking in tests."""
    try:
        return await asyncio.wait_for(
            ws_connect(
                url,
                subprotocols=_SUBPROTOCOLS,
                additional_headers=headers,
                ssl=ssl_context,
                max_size=None,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise APIConnectionError(f"Timed out connecting to {url} after {timeout}s") from exc
    except (OSError, websockets.exceptions.InvalidHandshake) as exc:
        raise APIConnectionError(f"Unable to attach via {url}: {exc}") from exc


def _check_error_frame(payload: bytes) -> None:
    """Raise if an error-channel frame carries a failed ``Status``."""
    if not payload:
        return
    try:
        status: dict[str, Any] = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError):
        # v1-style plain text error
        raise AttachError(payload.decode("utf-8", errors="replace"))
    if status.get("status") != "Success":
        raise AttachError(
            status.get("message") or "attach session failed",
            details=status.get("details") or {},
        )


class WebSocketAttachTransport:
    """:class:`~binbuild.transport.base.AttachTransport` speaking the channel protocol."""

    def __init__(
        self,
        api_url: str,
        token: str | None = None,
        *,
        verify_ssl: bool = True,
        connect_timeout: float = 10.0,
        chunk_size: int = _DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._api_url = api_url
        self._token = token
        self._verify_ssl = verify_ssl
        self._connect_timeout = connect_timeout
        self._chunk_size = chunk_size

    def _headers(self) -> dict[str, str]:
        if self._token:
            return {"Authorization": f"Bearer {self._token}"}
        return {}

    async def stream(self, target: AttachTarget, payload: PayloadSource) -> None:
        """Copy *payload* into the target container's stdin and wait for the session to end.

        Raises:
            APIConnectionError: If the session cannot be opened.
            AttachError: If the connection breaks or the remote side reports failure.
        """
        url = _ws_url(self._api_url, target)
        ws = await _open_connection(
            url,
            self._headers(),
            _ssl_context(url, self._verify_ssl),
            self._connect_timeout,
        )
        logger.debug(
            "Attached to %s/%s container %s (%s)",
            target.namespace,
            target.pod,
            target.container,
            ws.subprotocol,
        )
        try:
            sent = 0
            async for chunk in iter_payload(payload, self._chunk_size):
                await ws.send(bytes([_STDIN_CHANNEL]) + chunk)
                sent += len(chunk)

            if ws.subprotocol == _V5_PROTOCOL:
                await ws.send(bytes([_CLOSE_CHANNEL, _STDIN_CHANNEL]))
                await self._drain(ws)
            logger.debug("Sent %d bytes to %s/%s", sent, target.pod, target.container)
        except websockets.exceptions.ConnectionClosed as exc:
            raise AttachError(f"attach session to {target.pod} closed unexpectedly: {exc}") from exc
        finally:
            await ws.close()

    async def _drain(self, ws: ClientConnection) -> None:
        """Read until the server ends the session, surfacing error-channel failures."""
        async for message in ws:
            if isinstance(message, str):
                message = message.encode()
            if not message:
                continue
            channel, body = message[0], message[1:]
            if channel == _ERROR_CHANNEL:
                _check_error_frame(body)
            elif channel in (_STDOUT_CHANNEL, _STDERR_CHANNEL):
                logger.debug("attach output (channel %d): %.200r", channel, body)
