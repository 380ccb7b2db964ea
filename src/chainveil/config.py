from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

from dotenv import find_dotenv, load_dotenv

from .crypto.aeads import OuterAead, aead_by_name
from .exceptions import ConfigurationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class TransportPolicy:
    """Operational settings for a protocol instance.

    ``window_capacity`` is the number of headers kept in the window and
    ``lookback_depth`` how many headers behind the current one a decoder
    tries. The capacity must cover the current header plus the lookback.
    Policies are immutable; derive variants with ``dataclasses.replace``.
    """

    window_capacity: int = 4
    lookback_depth: int = 3
    aead: OuterAead = OuterAead.AES_256_GCM
    prefer_referenced_header: bool = False
    poll_interval_seconds: float = 30.0

    @classmethod
    def recommended(cls) -> "TransportPolicy":
        """Defaults for a chain with roughly ten-minute blocks."""
        return cls(
            window_capacity=4,
            lookback_depth=3,
            aead=OuterAead.AES_256_GCM,
            prefer_referenced_header=False,
            poll_interval_seconds=30.0,
        )

    def validate(self) -> "TransportPolicy":
        if self.lookback_depth < 0:
            raise ConfigurationError("lookback_depth cannot be negative")
        if self.window_capacity < 4:
            raise ConfigurationError("window_capacity must be at least 4")
        if self.window_capacity < self.lookback_depth + 1:
            raise ConfigurationError(
                f"window_capacity {self.window_capacity} cannot hold current header "
                f"plus lookback of {self.lookback_depth}"
            )
        if self.poll_interval_seconds <= 0:
            raise ConfigurationError("poll_interval_seconds must be positive")
        if not isinstance(self.aead, OuterAead):
            raise ConfigurationError(f"unsupported outer AEAD: {self.aead!r}")
        return self

    @classmethod
    def from_env(
        cls,
        prefix: str = "CHAINVEIL_",
        dotenv_path: Optional[Path] = None,
    ) -> "TransportPolicy":
        """Build a policy from environment variables.

        A ``.env`` file (``dotenv_path`` or one found from the working
        directory) is loaded first without overriding variables that are
        already set. Recognized keys, after ``prefix``: WINDOW_CAPACITY,
        LOOKBACK_DEPTH, AEAD, PREFER_REFERENCED_HEADER, POLL_INTERVAL_SECONDS.
        """
        if dotenv_path is not None:
            load_dotenv(dotenv_path, override=False)
        else:
            load_dotenv(find_dotenv(usecwd=True), override=False)

        env = {k[len(prefix):]: v for k, v in os.environ.items() if k.startswith(prefix)}
        overrides: dict[str, Any] = {}
        try:
            if "WINDOW_CAPACITY" in env:
                overrides["window_capacity"] = int(env["WINDOW_CAPACITY"])
            if "LOOKBACK_DEPTH" in env:
                overrides["lookback_depth"] = int(env["LOOKBACK_DEPTH"])
            if "AEAD" in env:
                overrides["aead"] = aead_by_name(env["AEAD"])
            if "POLL_INTERVAL_SECONDS" in env:
                overrides["poll_interval_seconds"] = float(env["POLL_INTERVAL_SECONDS"])
        except ValueError as e:
            raise ConfigurationError(f"invalid {prefix} setting: {e}") from e
        if "PREFER_REFERENCED_HEADER" in env:
            overrides["prefer_referenced_header"] = _parse_bool(
                prefix + "PREFER_REFERENCED_HEADER", env["PREFER_REFERENCED_HEADER"]
            )
        return replace(cls.recommended(), **overrides).validate()

    def as_dict(self) -> dict[str, Any]:
        return {
            "window_capacity": int(self.window_capacity),
            "lookback_depth": int(self.lookback_depth),
            "aead": self.aead.name,
            "prefer_referenced_header": bool(self.prefer_referenced_header),
            "poll_interval_seconds": float(self.poll_interval_seconds),
        }


def _parse_bool(key: str, value: str) -> bool:
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got {value!r}")
