"""YAML configuration file loading."""

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".peercrawl"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.yaml"


@dataclass
class CrawlerConfig:
    """Top-level configuration for the peercrawl tool.

    Every field has a default matching what Tendermint-style RPC nodes
    expose, so a config file is only needed to tune retries or paths.

    Attributes:
        max_attempts: Number of full passes over the bootstrap list when
            resolving the network identifier.
        retry_delay: Seconds to sleep between two bootstrap passes.
        status_path: RPC path returning the node's status.
        net_info_path: RPC path returning the node's peer list.
        user_agent: ``User-Agent`` header sent with every request.
    """

    max_attempts: int = 3
    retry_delay: float = 10.0
    status_path: str = "/status"
    net_info_path: str = "/net_info"
    user_agent: str = "peercrawl"


# Keys in the YAML file that map to CrawlerConfig fields.
_YAML_KEY_TO_FIELD: dict[str, str] = {
    "max_attempts": "max_attempts",
    "retry_delay": "retry_delay",
    "status_path": "status_path",
    "net_info_path": "net_info_path",
    "user_agent": "user_agent",
}


def load_config(path: Path | str | None = None) -> CrawlerConfig:
    """Load configuration from a YAML file.

    Args:
        path: Explicit path to a YAML config file.  If ``None``, the
            default location (``~/.peercrawl/config.yaml``) is tried.  If
            the default file doesn't exist, a ``CrawlerConfig`` with all
            defaults is returned silently.

    Returns:
        A populated ``CrawlerConfig`` instance.

    Raises:
        FileNotFoundError: If an explicit *path* was given but doesn't exist.
        ConfigError: If the file contains invalid YAML, has an unexpected
            top-level structure, or holds out-of-range values.
    """
    resolved = _resolve_path(path)

    if resolved is None:
        logger.debug("No config file found; using defaults")
        return CrawlerConfig()

    logger.debug("Loading config from %s", resolved)
    text = resolved.read_text(encoding="utf-8")

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {resolved}: {exc}") from exc

    if raw is None:
        # Empty file, treat as all-defaults.
        return CrawlerConfig()

    if not isinstance(raw, dict):
        raise ConfigError(
            f"Expected a YAML mapping at the top level in {resolved}, "
            f"got {type(raw).__name__}"
        )

    cfg = _build_config(raw, source=resolved)
    _validate(cfg, source=resolved)
    return cfg


class ConfigError(Exception):
    """Raised when a configuration file is malformed or unreadable."""


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------


def _resolve_path(path: Path | str | None) -> Path | None:
    """Return a concrete ``Path`` to read, or ``None`` if nothing to read.

    Raises:
        FileNotFoundError: If the caller supplied an explicit path that
            doesn't exist on disk.
    """
    if path is not None:
        p = Path(path).expanduser()
        if not p.is_file():
            raise FileNotFoundError(f"Config file not found: {p}")
        return p

    default = DEFAULT_CONFIG_PATH.expanduser()
    if default.is_file():
        return default
    return None


def _build_config(raw: dict, source: Path) -> CrawlerConfig:
    """Map raw YAML dict to a ``CrawlerConfig``, ignoring unknown keys."""
    kwargs: dict[str, object] = {}

    for yaml_key, field_name in _YAML_KEY_TO_FIELD.items():
        if yaml_key in raw:
            kwargs[field_name] = raw[yaml_key]

    unknown = set(raw) - set(_YAML_KEY_TO_FIELD)
    if unknown:
        logger.warning(
            "Ignoring unknown config keys in %s: %s",
            source,
            ", ".join(sorted(unknown)),
        )

    return CrawlerConfig(**kwargs)


def _validate(cfg: CrawlerConfig, source: Path) -> None:
    """Reject values the crawler cannot run with."""
    if not isinstance(cfg.max_attempts, int) or cfg.max_attempts < 1:
        raise ConfigError(
            f"max_attempts in {source} must be a positive integer, "
            f"got {cfg.max_attempts!r}"
        )
    if not isinstance(cfg.retry_delay, (int, float)) or cfg.retry_delay < 0:
        raise ConfigError(
            f"retry_delay in {source} must be a non-negative number, "
            f"got {cfg.retry_delay!r}"
        )
    for name in ("status_path", "net_info_path"):
        value = getattr(cfg, name)
        if not isinstance(value, str) or not value.startswith("/"):
            raise ConfigError(
                f"{name} in {source} must be a path starting with '/', "
                f"got {value!r}"
            )
