"""zero-init configuration.

Centralised, typed configuration for the init flow.  All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field


def _default_zero_home() -> Path:
    return Path.home() / ".zero"


class FetchConfig(BaseModel):
    """Tuning knobs for the concurrent module fetch."""

    max_parallel: int = Field(
        default=4, ge=1, description="Maximum concurrent module downloads"
    )
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-fetch timeout in seconds; None waits indefinitely",
    )
    retries: int = Field(
        default=0, ge=0, description="Extra attempts for a failed fetch"
    )
    retry_delay: float = Field(
        default=1.0, ge=0, description="Seconds to wait before each retry (multiplied by attempt)"
    )


class Config(BaseModel):
    """Global zero-init configuration.

    Instances are typically created once by the CLI entry point and then
    passed to ``InitPipeline`` and on to the module loader.
    """

    output_dir: Path = Field(default=Path("."))
    zero_home: Path = Field(default_factory=_default_zero_home)
    modules_dir: str = Field(default="modules")
    credentials_file: str = Field(default="credentials.yml")
    registry_path: Optional[Path] = Field(
        default=None, description="Stack registry override; packaged registry.yml if unset"
    )
    aws_region: str = Field(default="us-east-1")
    verify_identity: bool = Field(default=True)
    allow_duplicate_modules: bool = Field(
        default=False,
        description="Let the last-parsed module win on a name collision instead of failing",
    )
    fetch: FetchConfig = Field(default_factory=FetchConfig)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def modules_cache_path(self) -> Path:
        """Directory holding one sub-directory per fetched module source."""
        return self.zero_home / self.modules_dir

    @property
    def credentials_path(self) -> Path:
        """Path to the persisted per-project credentials YAML."""
        return self.zero_home / self.credentials_file

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to ``<zero_home>/config.json``.

        Returns:
            The resolved path where the file was written.
        """
        target = path or (self.zero_home / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            ZERO_HOME, ZERO_OUTPUT_DIR, ZERO_REGISTRY, ZERO_AWS_REGION,
            ZERO_VERIFY_IDENTITY, ZERO_ALLOW_DUPLICATE_MODULES,
            ZERO_MAX_PARALLEL_FETCHES, ZERO_FETCH_TIMEOUT, ZERO_FETCH_RETRIES.
        """
        fetch_kwargs: dict[str, Any] = {}
        if os.environ.get("ZERO_MAX_PARALLEL_FETCHES"):
            fetch_kwargs["max_parallel"] = int(os.environ["ZERO_MAX_PARALLEL_FETCHES"])
        if os.environ.get("ZERO_FETCH_TIMEOUT"):
            fetch_kwargs["timeout"] = float(os.environ["ZERO_FETCH_TIMEOUT"])
        if os.environ.get("ZERO_FETCH_RETRIES"):
            fetch_kwargs["retries"] = int(os.environ["ZERO_FETCH_RETRIES"])

        kwargs: dict[str, Any] = {}
        if os.environ.get("ZERO_HOME"):
            kwargs["zero_home"] = Path(os.environ["ZERO_HOME"])
        if os.environ.get("ZERO_REGISTRY"):
            kwargs["registry_path"] = Path(os.environ["ZERO_REGISTRY"])
        if os.environ.get("ZERO_VERIFY_IDENTITY"):
            kwargs["verify_identity"] = _env_flag(os.environ["ZERO_VERIFY_IDENTITY"])
        if os.environ.get("ZERO_ALLOW_DUPLICATE_MODULES"):
            kwargs["allow_duplicate_modules"] = _env_flag(
                os.environ["ZERO_ALLOW_DUPLICATE_MODULES"]
            )

        return cls(
            output_dir=Path(os.environ.get("ZERO_OUTPUT_DIR", ".")),
            aws_region=os.environ.get("ZERO_AWS_REGION", "us-east-1"),
            fetch=FetchConfig(**fetch_kwargs),
            **kwargs,
        )

    def ensure_directories(self) -> None:
        """Create the directories that must exist before modules are fetched."""
        for directory in (self.zero_home, self.modules_cache_path):
            directory.mkdir(parents=True, exist_ok=True)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "y", "on")
