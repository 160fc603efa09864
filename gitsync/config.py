"""Runtime configuration for the gitsync controller.

This module provides the ControllerConfig dataclass, which controls where
clones are staged, how long git and HTTP calls may run, and where the object
store and blob registry live.

Usage
-----
Create a configuration with defaults:

>>> config = ControllerConfig()
>>> config.git_timeout_s
300.0

Or load from environment variables:

>>> import os
>>> os.environ["GITSYNC_GIT_TIMEOUT_S"] = "60"
>>> ControllerConfig.from_env().git_timeout_s
60.0

"""

from __future__ import annotations

import dataclasses as dc
import os
from pathlib import Path

_DEFAULT_GIT_TIMEOUT_S = 300.0
_DEFAULT_HTTP_TIMEOUT_S = 20.0
_DEFAULT_LOG_LEVEL = "INFO"


@dc.dataclass(frozen=True, slots=True)
class ControllerConfig:
    """Configuration shared by the reconcilers, pipeline, and clients.

    Attributes
    ----------
    work_dir
        Root directory for per-attempt temporary clones. ``None`` uses the
        system temporary directory.
    git_timeout_s
        Upper bound for a single git command (clone, commit, push).
    http_timeout_s
        Timeout for provider API and blob registry requests.
    registry_url
        Base URL of the OCI registry that serves snapshot blobs.
    registry_token
        Bearer token for the registry, if it requires one.
    database_url
        SQLAlchemy URL of the object store.
    log_level
        Raw log level string; normalised by :mod:`gitsync.logging`.
    allow_stub_broker
        Let the actors fall back to an in-memory Dramatiq broker when the
        worker installed none.

    """

    work_dir: Path | None = None
    git_timeout_s: float = _DEFAULT_GIT_TIMEOUT_S
    http_timeout_s: float = _DEFAULT_HTTP_TIMEOUT_S
    registry_url: str | None = None
    registry_token: str | None = None
    database_url: str | None = None
    log_level: str = _DEFAULT_LOG_LEVEL
    allow_stub_broker: bool = False

    @staticmethod
    def _parse_positive_float(env_var: str, default: float) -> float:
        """Read a positive float env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            msg = f"{env_var} must be a number, got: {raw!r}"
            raise ValueError(msg) from exc
        if value <= 0:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @staticmethod
    def _parse_flag(env_var: str) -> bool:
        return os.environ.get(env_var, "").strip().lower() in {"1", "true", "yes"}

    @staticmethod
    def _optional_str(env_var: str) -> str | None:
        raw = os.environ.get(env_var, "").strip()
        return raw or None

    @classmethod
    def from_env(cls) -> ControllerConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``GITSYNC_WORK_DIR``: root for temporary clones.
        - ``GITSYNC_GIT_TIMEOUT_S``: per-command git timeout in seconds.
        - ``GITSYNC_HTTP_TIMEOUT_S``: HTTP timeout in seconds.
        - ``GITSYNC_REGISTRY_URL``: blob registry base URL.
        - ``GITSYNC_REGISTRY_TOKEN``: blob registry bearer token.
        - ``GITSYNC_DATABASE_URL``: object store SQLAlchemy URL.
        - ``GITSYNC_LOG_LEVEL``: log level.
        - ``GITSYNC_ALLOW_STUB_BROKER``: ``1``, ``true`` or ``yes`` to allow
          the in-memory broker.

        Raises
        ------
        ValueError
            If a timeout variable is not a positive number.

        """
        raw_work_dir = cls._optional_str("GITSYNC_WORK_DIR")
        return cls(
            work_dir=Path(raw_work_dir) if raw_work_dir else None,
            git_timeout_s=cls._parse_positive_float(
                "GITSYNC_GIT_TIMEOUT_S", _DEFAULT_GIT_TIMEOUT_S
            ),
            http_timeout_s=cls._parse_positive_float(
                "GITSYNC_HTTP_TIMEOUT_S", _DEFAULT_HTTP_TIMEOUT_S
            ),
            registry_url=cls._optional_str("GITSYNC_REGISTRY_URL"),
            registry_token=cls._optional_str("GITSYNC_REGISTRY_TOKEN"),
            database_url=cls._optional_str("GITSYNC_DATABASE_URL"),
            log_level=os.environ.get("GITSYNC_LOG_LEVEL", _DEFAULT_LOG_LEVEL),
            allow_stub_broker=cls._parse_flag("GITSYNC_ALLOW_STUB_BROKER"),
        )
