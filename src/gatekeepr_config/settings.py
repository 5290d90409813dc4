from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterator, Optional

from dotenv import load_dotenv

ENV_PREFIX = "GATEKEEPR_"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_ROOT_MARKERS = ("pyproject.toml", ".git")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name, default)


def env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _marked_ancestor(start: Path) -> Optional[Path]:
    for candidate in (start, *start.parents):
        if any((candidate / marker).exists() for marker in _ROOT_MARKERS):
            return candidate
    return None


@lru_cache(maxsize=1)
def repo_root() -> Path:
    """
    GATEKEEPR_REPO_ROOT if set, else the nearest ancestor of the working
    directory (then of this package) that holds pyproject.toml or .git.
    """
    explicit = _env("REPO_ROOT")
    if explicit:
        root = Path(explicit).expanduser().resolve()
        if not root.is_dir():
            raise RuntimeError(f"GATEKEEPR_REPO_ROOT is not a directory: {root}")
        return root

    package_dir = Path(__file__).resolve().parent
    for start in (Path.cwd().resolve(), package_dir):
        found = _marked_ancestor(start)
        if found is not None:
            return found
    # src/gatekeepr_config/settings.py -> repo
    return package_dir.parents[1]


def _env_file_candidates() -> Iterator[Path]:
    explicit = _env("ENV_FILE")
    if explicit:
        yield Path(explicit).expanduser().resolve()
    yield repo_root() / ".env"
    yield repo_root() / "config" / ".env"


@lru_cache(maxsize=1)
def load_env_once() -> Optional[Path]:
    """Load the first existing .env file without overriding variables already set."""
    env_file = next((p for p in _env_file_candidates() if p.is_file()), None)
    if env_file is not None:
        load_dotenv(dotenv_path=str(env_file), override=False)
    return env_file


@lru_cache(maxsize=1)
def config_dir() -> Path:
    override = _env("CONFIG_DIR")
    base = Path(override).expanduser() if override else repo_root() / "config"
    return base.resolve()


def rules_path() -> Path:
    override = _env("RULES_PATH")
    return Path(override).expanduser().resolve() if override else (config_dir() / "rules.json").resolve()


@dataclass(frozen=True)
class Settings:
    rules_path: Path
    rules_poll_interval_s: float = 5.0
    access_reset_window_ms: int = 60_000
    access_evict_after_windows: int = 10
    transit_base_url: str = "http://localhost:8085/api/v1"
    transit_api_key: str = ""
    source_base_url: str = ""
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Collect runtime settings. Call load_env_once() first if a .env should apply."""
        p = ENV_PREFIX
        return cls(
            rules_path=rules_path(),
            rules_poll_interval_s=env_float(p + "RULES_POLL_INTERVAL", 5.0),
            access_reset_window_ms=env_int(p + "ACCESS_RESET_WINDOW_MS", 60_000),
            access_evict_after_windows=env_int(p + "ACCESS_EVICT_AFTER_WINDOWS", 10),
            transit_base_url=_env("TRANSIT_BASE_URL", "http://localhost:8085/api/v1"),
            transit_api_key=_env("TRANSIT_API_KEY", ""),
            source_base_url=_env("SOURCE_BASE_URL", ""),
            api_host=_env("API_HOST", "0.0.0.0"),
            api_port=env_int(p + "API_PORT", 8080),
            api_debug=env_flag(p + "API_DEBUG"),
        )


def configure_logging() -> None:
    """Root logging from GATEKEEPR_LOG_LEVEL / GATEKEEPR_LOG_FORMAT; a no-op once handlers exist."""
    if logging.getLogger().handlers:
        return
    level_name = (_env("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=_env("LOG_FORMAT") or DEFAULT_LOG_FORMAT,
    )


def init_runtime(*, configure_logs: bool = True, load_env: bool = True) -> None:
    """Entrypoint bootstrap: .env first, so it can set the log level."""
    if load_env:
        load_env_once()
    if configure_logs:
        configure_logging()
