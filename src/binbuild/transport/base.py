from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Protocol, Union, runtime_checkable
from urllib.parse import urlencode

from pydantic import BaseModel

PayloadSource = Union[bytes, AsyncIterable[bytes]]
"""Upload body: a complete byte string or an async stream of chunks."""


class AttachTarget(BaseModel):
    """Locates the container whose standard input receives the payload."""

    namespace: str
    pod: str
    container: str
    stdin: bool = True

    @property
    def path(self) -> str:
        return f"/api/v1/namespaces/{self.namespace}/pods/{self.pod}/attach"

    @property
    def query(self) -> str:
        return urlencode({"container": self.container, "stdin": str(self.stdin).lower()})


@runtime_checkable
class AttachTransport(Protocol):
    """Opens one duplex session to a container and copies the payload to stdin.

    ``stream`` returns once the session has ended cleanly and raises if the
    session could not be opened, broke mid-copy, or the remote side reported
    a failure.
    """

    async def stream(self, target: AttachTarget, payload: PayloadSource) -> None: ...


async def iter_payload(payload: PayloadSource, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield non-empty chunks of at most *chunk_size* bytes from *payload*."""
    if isinstance(payload, (bytes, bytearray, memoryview)):
        data = bytes(payload)
        for offset in range(0, len(data), chunk_size):
            yield data[offset : offset + chunk_size]
        return
    async for chunk in payload:
        for offset in range(0, len(chunk), chunk_size):
            yield chunk[offset : offset + chunk_size]
