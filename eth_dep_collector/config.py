"""
Configuration management for the dependency collector.

Settings are resolved in this order:
1. Values set explicitly at runtime (set_* functions, used by the CLI)
2. ETH_DEP_COLLECTOR_* environment variables (a .env file is honored)
3. [tool.eth-dep-collector] in .eth-dep-collector.toml
4. [tool.eth-dep-collector] in pyproject.toml
5. Built-in defaults
"""

import os
import tomllib
from pathlib import Path
from typing import Any, Callable

from dotenv import load_dotenv

load_dotenv()

# project_root is the parent directory of eth_dep_collector/
PROJECT_ROOT = Path(__file__).resolve().parent.parent

ENV_PREFIX = "ETH_DEP_COLLECTOR_"

# Global configuration for SSL verification
# Default: True (verify SSL certificates)
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

DEFAULT_OUTPUT_PATH = PROJECT_ROOT / "data" / "deps.json"
DEFAULT_CANONICAL_MAPPINGS = Path(__file__).resolve().parent / "mappings" / "canonical.yaml"

# Cache configuration
# Default cache directory: ~/.cache/eth-dep-collector
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "eth-dep-collector"
# Default TTL: 30 days (published crate metadata never changes for a version)
DEFAULT_CACHE_TTL = 30 * 24 * 60 * 60

# Retry and pacing
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RATE_LIMIT_WAIT = 60.0
DEFAULT_BACKOFF_BASE = 1.0
DEFAULT_SEARCH_DELAY = 2.0  # GitHub code search: 30 req/min
DEFAULT_FILE_DELAY = 0.5
DEFAULT_REGISTRY_INTERVAL = 1.1  # crates.io: 1 req/sec

DEFAULT_TOP_SHARED_LIMIT = 50

# Values set explicitly at runtime
_OVERRIDES: dict[str, Any] = {}


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def get_tool_config() -> dict[str, Any]:
    """
    Return the [tool.eth-dep-collector] table.

    .eth-dep-collector.toml takes priority over pyproject.toml; the two are
    not merged.
    """
    for filename in (".eth-dep-collector.toml", "pyproject.toml"):
        config_path = PROJECT_ROOT / filename
        if config_path.exists():
            section = (
                load_config_file(config_path)
                .get("tool", {})
                .get("eth-dep-collector", {})
            )
            if section:
                return section
    return {}


def _resolve(key: str, default: Any, cast: Callable[[Any], Any]) -> Any:
    """Resolve one setting through overrides, environment and config files."""
    if key in _OVERRIDES:
        return _OVERRIDES[key]

    env_value = os.getenv(ENV_PREFIX + key.upper())
    if env_value:
        try:
            return cast(env_value)
        except ValueError:
            pass

    config = get_tool_config()
    if key in config:
        return cast(config[key])

    return default


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in {"0", "false", "no", "off", ""}
    return bool(value)


def _to_path(value: Any) -> Path:
    return Path(value).expanduser()


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """
    Get the current SSL verification setting.

    Returns:
        Whether SSL verification is enabled.
    """
    return VERIFY_SSL


def get_github_token() -> str | None:
    """Return the GitHub token from the environment (or .env)."""
    token = os.getenv("GITHUB_TOKEN")
    return token or None


def get_output_path() -> Path:
    """Path of the aggregated dataset written by `collect`."""
    return _resolve("output", DEFAULT_OUTPUT_PATH, _to_path)


def set_output_path(path: Path | str) -> None:
    _OVERRIDES["output"] = _to_path(path)


def get_canonical_mappings_path() -> Path:
    """Path of the canonical-group YAML table."""
    return _resolve("canonical_mappings", DEFAULT_CANONICAL_MAPPINGS, _to_path)


def set_canonical_mappings_path(path: Path | str) -> None:
    _OVERRIDES["canonical_mappings"] = _to_path(path)


def get_cache_dir() -> Path:
    """
    Get the cache directory path.

    Priority:
    1. Explicitly set value via set_cache_dir()
    2. ETH_DEP_COLLECTOR_CACHE_DIR environment variable
    3. cache_dir in config
    4. Default: ~/.cache/eth-dep-collector

    Returns:
        Path to the cache directory.
    """
    return _resolve("cache_dir", DEFAULT_CACHE_DIR, _to_path)


def set_cache_dir(path: Path | str) -> None:
    """
    Set the cache directory path explicitly.

    Args:
        path: Path to the cache directory.
    """
    _OVERRIDES["cache_dir"] = _to_path(path)


def get_cache_ttl() -> int:
    """Get the cache TTL (Time To Live) in seconds."""
    return _resolve("cache_ttl", DEFAULT_CACHE_TTL, int)


def set_cache_ttl(seconds: int) -> None:
    _OVERRIDES["cache_ttl"] = seconds


def is_cache_enabled() -> bool:
    """Check if the registry lookup cache is enabled (default: True)."""
    return _resolve("cache_enabled", True, _to_bool)


def set_cache_enabled(enabled: bool) -> None:
    _OVERRIDES["cache_enabled"] = enabled


def get_retry_attempts() -> int:
    """Number of attempts per outbound request, including the first."""
    return max(1, _resolve("retry_attempts", DEFAULT_RETRY_ATTEMPTS, int))


def get_rate_limit_wait() -> float:
    """Seconds to wait after a rate-limit response before retrying."""
    return _resolve("rate_limit_wait", DEFAULT_RATE_LIMIT_WAIT, float)


def get_backoff_base() -> float:
    """Base of the exponential backoff used for other transient failures."""
    return _resolve("backoff_base", DEFAULT_BACKOFF_BASE, float)


def get_search_delay() -> float:
    """Seconds to wait before each code search query."""
    return _resolve("search_delay", DEFAULT_SEARCH_DELAY, float)


def get_file_delay() -> float:
    """Seconds to wait between file fetches during a native scan."""
    return _resolve("file_delay", DEFAULT_FILE_DELAY, float)


def get_registry_interval() -> float:
    """Minimum seconds between two crates.io index requests."""
    return _resolve("registry_interval", DEFAULT_REGISTRY_INTERVAL, float)


def get_top_shared_limit() -> int | None:
    """Maximum rows in the top-shared view; 0 disables the limit."""
    limit = _resolve("top_shared_limit", DEFAULT_TOP_SHARED_LIMIT, int)
    return limit or None


def set_setting(key: str, value: Any) -> None:
    """Override any setting by key (e.g. 'search_delay')."""
    _OVERRIDES[key] = value


def reset_settings() -> None:
    """Drop all runtime overrides."""
    global VERIFY_SSL
    _OVERRIDES.clear()
    VERIFY_SSL = True
