from __future__ import annotations

import json
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .shared import DEFAULT_DRIVER_NAME, DEFAULT_HTTP_TIMEOUT, DEFAULT_REPOS, DriverTypeName

DEFAULT_CONFIG_PATHS = (
    Path("/etc/falco-driver/config.json"),
    Path.home() / ".config" / "falco-driver" / "config.json",
)


class DriverConfig(BaseModel):
    """Driver loader settings.

    Sources, lowest precedence first: JSON config files, environment
    (HOST_ROOT, FALCO_DRIVER_VERSION, FALCO_DRIVER_REPOS), command line.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = DEFAULT_DRIVER_NAME
    version: str | None = None
    repos: list[str] = Field(default_factory=lambda: list(DEFAULT_REPOS))
    type: DriverTypeName | None = None
    host_root: str = "/"
    kernel_release: str | None = None
    kernel_version: str | None = None
    http_timeout: float = Field(default=DEFAULT_HTTP_TIMEOUT, gt=0)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        if not v or "/" in v or "_" in v:
            raise ValueError("Driver name must be non-empty and contain neither '/' nor '_'")
        return v

    @field_validator("repos")
    @classmethod
    def _validate_repos(cls, v: list[str]) -> list[str]:
        repos = [r.rstrip("/") for r in v if r.strip()]
        for repo in repos:
            if not repo.startswith(("http://", "https://")):
                raise ValueError(f"Repository must be an http(s) URL: {repo}")
        return repos

    def to_json(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_json(cls, data: dict) -> DriverConfig:
        return cls.model_validate(data)


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    environ = os.environ if environ is None else environ
    overrides: dict[str, Any] = {}
    if environ.get("HOST_ROOT"):
        overrides["host_root"] = environ["HOST_ROOT"]
    if environ.get("FALCO_DRIVER_VERSION"):
        overrides["version"] = environ["FALCO_DRIVER_VERSION"]
    if environ.get("FALCO_DRIVER_REPOS"):
        overrides["repos"] = [r.strip() for r in environ["FALCO_DRIVER_REPOS"].split(",")]
    return overrides


def load_config(
    config_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    search_paths: Sequence[Path] = DEFAULT_CONFIG_PATHS,
) -> DriverConfig:
    """Build the effective configuration.

    Args:
        config_path: Explicit config file; must exist when given
        overrides: Highest precedence values, None entries are ignored
        environ: Environment to read overrides from, os.environ if None
        search_paths: Files merged in order when no explicit path is given

    Raises:
        FileNotFoundError: If `config_path` does not exist
        pydantic.ValidationError: If the merged settings are invalid
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        data.update(json.loads(config_path.read_text()))
    else:
        for path in search_paths:
            if path.exists():
                data.update(json.loads(path.read_text()))

    data.update(env_overrides(environ))
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return DriverConfig.from_json(data)
