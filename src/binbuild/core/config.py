from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, Field

from binbuild.resilience.retry import RetryPolicy


class InstantiateConfig(BaseModel):
    api_url: str = "https://127.0.0.1:6443"
    token: str | None = None
    verify_ssl: bool = True
    timeout: float = Field(default=300.0, ge=0.0, le=3600.0)
    """Overall budget for launching the build and waiting for it to run."""
    launch_poll_interval: float = Field(default=1.0, gt=0.0)
    phase_poll_interval: float = Field(default=1.0, gt=0.0)
    cancel_poll_interval: float = Field(default=0.5, gt=0.0)
    cancel_poll_duration: float = Field(default=30.0, ge=0.0)
    request_timeout: float = Field(default=30.0, gt=0.0)
    """Per-call timeout for API server requests."""
    max_retries: int = Field(default=3, ge=0, le=10)
    retry_policy: RetryPolicy | None = None
    """Optional retry policy for API server reads; built from ``max_retries`` if unset."""
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def effective_retry_policy(self) -> RetryPolicy:
        if self.retry_policy is not None:
            return self.retry_policy
        return RetryPolicy(max_retries=self.max_retries)

    @classmethod
    def from_env(cls) -> InstantiateConfig:
        """Create an :class:`InstantiateConfig` from ``BINBUILD_*`` environment variables.

        Reads the following env vars (all optional):

        * ``BINBUILD_API_URL`` → ``api_url``
        * ``BINBUILD_TOKEN`` → ``token``
        * ``BINBUILD_VERIFY_SSL`` → ``verify_ssl`` (``0``/``false``/``no`` disable)
        * ``BINBUILD_TIMEOUT`` → ``timeout`` (seconds, 0–3600)
        * ``BINBUILD_LOG_LEVEL`` → ``log_level`` (``DEBUG``, ``INFO``, ``WARNING``, ``ERROR``)

        Any variable that is not set or is empty is left at its default value.
        """
        kwargs: dict[str, Any] = {}

        api_url = os.environ.get("BINBUILD_API_URL")
        if api_url:
            kwargs["api_url"] = api_url

        token = os.environ.get("BINBUILD_TOKEN")
        if token:
            kwargs["token"] = token

        verify_ssl = os.environ.get("BINBUILD_VERIFY_SSL")
        if verify_ssl:
            kwargs["verify_ssl"] = verify_ssl.strip().lower() not in ("0", "false", "no")

        timeout_str = os.environ.get("BINBUILD_TIMEOUT")
        if timeout_str:
            kwargs["timeout"] = float(timeout_str)

        log_level = os.environ.get("BINBUILD_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level

        return cls(**kwargs)
