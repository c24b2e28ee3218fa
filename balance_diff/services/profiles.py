"""Config-file profiles and address-list resolution."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..core.errors import ConfigError, InvalidArgumentError
from .address import split_addresses

logger = logging.getLogger(__name__)

CONFIG_FILENAMES: Sequence[str] = (".balancediffrc.json", ".balancediffrc")


def default_config_locations(cwd: Optional[Path] = None, home: Optional[Path] = None) -> List[Path]:
    """Search order used when ``--config`` is not given."""
    cwd = cwd or Path.cwd()
    home = home or Path.home()
    return [
        *(cwd / name for name in CONFIG_FILENAMES),
        home / ".balancediffrc.json",
        home / ".config" / "balancediff" / "config.json",
    ]


class Profile(BaseModel):
    address: Union[str, List[str]]
    network: Optional[str] = None

    @field_validator("address")
    @classmethod
    def _non_empty(cls, value: Union[str, List[str]]) -> Union[str, List[str]]:
        if not value:
            raise ValueError("address must not be empty")
        return value

    @property
    def addresses(self) -> List[str]:
        values = [self.address] if isinstance(self.address, str) else self.address
        return split_addresses(values)


class ConfigFile(BaseModel):
    profiles: Dict[str, Profile] = Field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedProfile:
    name: str
    addresses: List[str]
    network: Optional[str]
    source: Path


def _read_config(path: Path) -> ConfigFile:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Could not load config from {path}: {exc}") from exc
    try:
        return ConfigFile.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc.errors()[0]['msg']}") from exc


def load_config(explicit: Optional[str] = None, locations: Optional[Sequence[Path]] = None) -> Optional[tuple[Path, ConfigFile]]:
    """Load ``explicit`` or the first readable default location.

    An explicit path that cannot be read is an error; default locations that
    are missing or unreadable are skipped.
    """
    if explicit:
        path = Path(explicit).expanduser()
        return path, _read_config(path)

    for path in locations if locations is not None else default_config_locations():
        if not path.is_file():
            continue
        try:
            return path, _read_config(path)
        except ConfigError as exc:
            logger.debug("Skipping config %s: %s", path, exc.message)
    return None


def resolve_profile(
    name: str,
    explicit: Optional[str] = None,
    locations: Optional[Sequence[Path]] = None,
) -> ResolvedProfile:
    loaded = load_config(explicit, locations)
    if loaded is None:
        raise ConfigError("No config file found. Create .balancediffrc.json with your profiles.")
    path, config = loaded
    profile = config.profiles.get(name)
    if profile is None:
        available = ", ".join(sorted(config.profiles)) or "none"
        raise ConfigError(
            f'Profile "{name}" not found in config.',
            details={"available": sorted(config.profiles), "hint": f"Available profiles: {available}"},
        )
    addresses = profile.addresses
    if not addresses:
        raise ConfigError(f'Profile "{name}" has no addresses.')
    return ResolvedProfile(name=name, addresses=addresses, network=profile.network, source=path)


def parse_address_list(value: str) -> List[str]:
    """``-A`` value: a path to a file (one address per line) or a comma-separated list."""
    path = Path(value).expanduser()
    try:
        is_file = path.is_file()
    except OSError:
        is_file = False
    if is_file:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise InvalidArgumentError(f"Could not read address file {path}: {exc}") from exc
        return split_addresses(lines)
    return split_addresses(value.split(","))


__all__ = [
    "CONFIG_FILENAMES",
    "ConfigFile",
    "Profile",
    "ResolvedProfile",
    "default_config_locations",
    "load_config",
    "parse_address_list",
    "resolve_profile",
]
