"""Configuration loader and dataclasses for rerouting settings."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional
import os
import yaml


CONFIG_ENV_VAR = "TRACK_ROUTER_CONFIG"


class TieBreak(str, Enum):
    """Rule for choosing between equal-length detours."""
    FEWEST_HOPS = "fewest_hops"
    SHORTEST = "shortest"


@dataclass
class RerouteParams:
    """Visibility-graph search and routing parameters (projected linear units)."""
    buffer_distance: float = 1000.0
    max_buffer_expansions: int = 5
    buffer_growth_factor: float = 1.0
    tie_break: TieBreak = TieBreak.FEWEST_HOPS
    max_workers: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.tie_break, TieBreak):
            try:
                self.tie_break = TieBreak(self.tie_break)
            except ValueError:
                valid = ", ".join(t.value for t in TieBreak)
                raise ValueError(f"Invalid tie_break '{self.tie_break}'. Valid: {valid}") from None
        if self.buffer_distance <= 0:
            raise ValueError("buffer_distance must be positive")
        if self.max_buffer_expansions < 0:
            raise ValueError("max_buffer_expansions must be >= 0")
        if self.buffer_growth_factor <= 0:
            raise ValueError("buffer_growth_factor must be positive")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

    def buffer_for_attempt(self, attempt: int) -> float:
        return self.buffer_distance * (1.0 + attempt * self.buffer_growth_factor)


@dataclass
class IOConfig:
    """Track and barrier file settings."""
    barrier_cache: Optional[str] = None
    time_field: str = "time"
    id_field: Optional[str] = "deployment_id"


@dataclass
class RouterConfig:
    """Complete configuration."""
    reroute: RerouteParams = field(default_factory=RerouteParams)
    io: IOConfig = field(default_factory=IOConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "RouterConfig":
        """Load configuration from a YAML file."""
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        return cls(
            reroute=RerouteParams(**data.get('reroute', {})),
            io=IOConfig(**data.get('io', {})),
        )


# Global config instance - lazily loaded
_config: Optional[RouterConfig] = None


def default_config_path() -> Path:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    # configs/reroute_defaults.yaml relative to project root
    return Path(__file__).resolve().parents[3] / "configs" / "reroute_defaults.yaml"


def get_config(config_path: Optional[Path] = None) -> RouterConfig:
    """Get the global configuration, loading from file if not already loaded.

    Args:
        config_path: Path to the config file. If None, uses ``$TRACK_ROUTER_CONFIG``
            or the default location.

    Returns:
        The RouterConfig instance.
    """
    global _config

    if _config is None or config_path is not None:
        if config_path is None:
            config_path = default_config_path()

        if config_path.exists():
            _config = RouterConfig.from_yaml(config_path)
        else:
            # Use defaults if config file not found
            _config = RouterConfig()

    return _config


def reload_config(config_path: Optional[Path] = None) -> RouterConfig:
    """Force reload of configuration from file."""
    global _config
    _config = None
    return get_config(config_path)
