"""
Runtime settings for the analyzer.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Callable, Mapping, Optional

DEFAULT_USER_AGENT = "WebAnalyzer/1.0"

ENV_PREFIX = "WEB_ANALYZER_"


@dataclass(frozen=True, slots=True)
class AnalyzerConfig:
    """Timeouts, probe pool size and identity used for outbound requests."""
    fetch_timeout: float = 15.0
    probe_timeout: float = 5.0
    max_probe_workers: int = 10
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.fetch_timeout <= 0:
            raise ValueError(f"fetch_timeout must be positive, got {self.fetch_timeout}")
        if self.probe_timeout <= 0:
            raise ValueError(f"probe_timeout must be positive, got {self.probe_timeout}")
        if self.max_probe_workers < 1:
            raise ValueError(f"max_probe_workers must be at least 1, got {self.max_probe_workers}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AnalyzerConfig":
        """
        Build a config from WEB_ANALYZER_* environment variables.

        Unset variables keep their defaults. A value that does not convert
        raises ValueError naming the offending variable.
        """
        env = os.environ if environ is None else environ
        overrides = {}
        for field_name, convert in _ENV_FIELDS.items():
            key = ENV_PREFIX + field_name.upper()
            raw = env.get(key)
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[field_name] = convert(raw.strip())
            except ValueError as e:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from e
        return cls(**overrides)

    def with_overrides(self, **changes) -> "AnalyzerConfig":
        """Return a copy with the non-None keyword arguments applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


_ENV_FIELDS: dict[str, Callable[[str], object]] = {
    "fetch_timeout": float,
    "probe_timeout": float,
    "max_probe_workers": int,
    "user_agent": str,
}
