# Author: PB & Claude
# Maintainer: PB
# Original date: 2026.10.19
# License: (c) HRDAG, 2025, GPL-2 or newer
#
# ------
# src/sharemigrate/config/manager.py

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Final, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator
from sqlalchemy.engine import URL, make_url

from sharemigrate.system.exceptions import ConfigError


# ---- Constants ----

CONFIG_FILE: Final = "sharemigrate.yml"
SECTIONS: Final[tuple[str, ...]] = ("database", "backend", "reconcile")


def _get_config_search_paths() -> tuple[Path, ...]:
    """Get config file search paths (ordered by priority: lowest to highest).

    Evaluated at call time so that tests can redirect the environment.
    """
    return (
        Path("/etc/sharemigrate") / CONFIG_FILE,
        Path.home() / ".config" / "sharemigrate" / CONFIG_FILE,
        Path(os.getenv("XDG_CONFIG_HOME", "")) / "sharemigrate" / CONFIG_FILE,
        Path(os.getenv("SHAREMIGRATE_CONFIG_HOME", "")) / CONFIG_FILE,
    )


# ---- Section Models ----

class DatabaseConfig(BaseModel):
    """Connection settings for the share database."""
    username: str = ""
    password: str = ""
    host: str = ""
    port: int = 3306
    name: str = ""
    table: str = Field(default="oc_share", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")
    driver: str = "mysql+pymysql"
    url: Optional[str] = None  # full SQLAlchemy URL, overrides the fields above

    def url_for_engine(self) -> URL:
        """Build the SQLAlchemy URL for this database."""
        if self.url:
            return make_url(self.url)
        if not self.host or not self.name:
            raise ConfigError("database host and name are required (or set database.url)")
        return URL.create(
            self.driver,
            username=self.username or None,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.name,
        )

    def describe(self) -> str:
        """Connection URL with the password masked."""
        return self.url_for_engine().render_as_string(hide_password=True)


class BackendConfig(BaseModel):
    """How to reach the EOS instance."""
    binary: str = "/usr/bin/eos"
    mgm_url: str = "root://eospps-slave.cern.ch"
    superuser_uid: str = "0"
    superuser_gid: str = "0"
    timeout: Optional[float] = Field(default=60.0, gt=0)


class ReconcileConfig(BaseModel):
    """Behaviour of the reconciliation run."""
    home_prefix: str = "/eos/scratch/user/"
    user: Optional[str] = None
    dry_run: bool = False
    concurrency: int = Field(default=20, ge=1)
    version_retries: int = Field(default=5, ge=1)
    retry_delay: float = Field(default=0.5, ge=0)
    retry_max_delay: float = Field(default=5.0, ge=0)

    @model_validator(mode="after")
    def validate_home_prefix(self) -> ReconcileConfig:
        if not self.home_prefix.startswith("/"):
            raise ValueError(f"home_prefix must be an absolute path: {self.home_prefix}")
        return self


class MigrationConfig(BaseModel):
    """Complete configuration handed to each component at construction."""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    debug: bool = False
    failure_log: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None,
             overrides: Optional[dict[str, Any]] = None) -> MigrationConfig:
        """Merge config files, an explicit config file and command line overrides.

        Args:
            config_path: Explicit YAML file, highest file priority (must exist)
            overrides: Nested dict of values from the command line; None values are ignored

        Raises:
            ConfigError: If a file cannot be read or the merged values are invalid
        """
        candidates = list(_get_config_search_paths())
        if config_path is not None:
            if not Path(config_path).exists():
                raise ConfigError(f"Config file not found: {config_path}")
            candidates.append(Path(config_path))

        data = _load_merged_config_data(tuple(candidates))
        if overrides:
            data = _merge(data, _drop_none(overrides))

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(e)) from e


# ---- Merging ----

def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    cleaned = {}
    for key, value in values.items():
        if isinstance(value, dict):
            value = _drop_none(value)
            if value:
                cleaned[key] = value
        elif value is not None:
            cleaned[key] = value
    return cleaned


def _merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Merge update into base, one level deep for the config sections."""
    merged = dict(base)
    for key, value in update.items():
        if key in SECTIONS and isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _load_merged_config_data(candidates: tuple[Path, ...]) -> dict[str, Any]:
    """Load and merge config data from candidate paths.

    Unlike a missing file, an unreadable or malformed file is an error.
    """
    merged_data: dict[str, Any] = {}
    found_configs = []

    for candidate in candidates:
        if candidate == Path("") / CONFIG_FILE or candidate == Path("sharemigrate") / CONFIG_FILE:
            continue  # unset environment variable
        if not candidate.exists():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {candidate}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {candidate} must contain a mapping")

        merged_data = _merge(merged_data, data)
        found_configs.append(str(candidate))
        logger.debug(f"Loaded config from {candidate}")

    if found_configs:
        logger.debug(f"Merged config from: {', '.join(found_configs)}")
    return merged_data


# done.
