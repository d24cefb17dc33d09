from __future__ import annotations

from binbuild.transport.base import AttachTarget, PayloadSource, iter_payload


class MockAttachTransport:
    """In-memory attach transport for testing.

    Usage::

        transport = MockAttachTransport()
        transport.fail_with(ConnectionRefusedError("connection refused"))
        await streamer.stream(build, latest, b"payload", guard)

        assert transport.targets[0].container == "git-clone"
    """

    def __init__(self) -> None:
        self.targets: list[AttachTarget] = []
        self.received: list[bytes] = []
        self._error: Exception | None = None

    def fail_with(self, exc: Exception) -> None:
        self._error = exc

    async def stream(self, target: AttachTarget, payload: PayloadSource) -> None:
        self.targets.append(target)
        if self._error is not None:
            raise self._error
        data = b"".join([chunk async for chunk in iter_payload(payload, 64 * 1024)])
        self.received.append(data)

    @property
    def session_count(self) -> int:
        return len(self.targets)
