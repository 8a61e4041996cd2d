"""Configuration assembly for the route finder service."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import yaml

from .cache import DEFAULT_TTL_S
from .datatypes import ResolvedConfig
from .upstream import DEFAULT_UPSTREAM_URL

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
DEFAULT_SETTINGS_FILE = PROJECT_ROOT / "config" / "settings.yml"

DEFAULTS: Dict[str, Any] = {
    "upstream_url": DEFAULT_UPSTREAM_URL,
    "cache_ttl_s": DEFAULT_TTL_S,
    "request_timeout_s": 30.0,
    "default_count": 10,
    "host": "0.0.0.0",
    "port": 3000,
    "log_level": "INFO",
}

ENV_CASTERS: Dict[str, Any] = {
    "UPSTREAM_URL": str,
    "CACHE_TTL_S": float,
    "REQUEST_TIMEOUT_S": float,
    "DEFAULT_COUNT": int,
    "HOST": str,
    "PORT": int,
    "LOG_LEVEL": str,
}


def build_cli() -> argparse.ArgumentParser:
    """Construct the top-level CLI for the route finder."""

    parser = argparse.ArgumentParser(description="Nearest-route and viewport query service")

    parser.add_argument(
        "--upstream-url",
        type=str,
        help="Endpoint returning the JSON array of routes",
    )
    parser.add_argument(
        "--cache-ttl-s",
        type=float,
        help="Seconds a fetched dataset is served before refreshing",
    )
    parser.add_argument(
        "--request-timeout-s",
        type=float,
        help="Timeout in seconds for upstream requests",
    )
    parser.add_argument(
        "--default-count",
        type=int,
        help="Number of routes returned when the caller omits count",
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Interface the HTTP server binds to",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port the HTTP server listens on",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level for the structured logger",
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=None,
        help="Path to a .env file (defaults to project root .env)",
    )
    parser.add_argument(
        "--settings-file",
        type=str,
        default=None,
        help="Path to a YAML settings file (defaults to config/settings.yml)",
    )

    return parser


def load_settings_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load optional YAML settings keyed by the names in ``DEFAULTS``."""

    effective_path = path or DEFAULT_SETTINGS_FILE
    if not effective_path or not effective_path.exists():
        return {}

    data = yaml.safe_load(effective_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, Mapping):
        raise ValueError("Settings file must contain a mapping of option names")

    settings = {str(key).lower(): value for key, value in data.items()}
    unknown = sorted(set(settings) - set(DEFAULTS))
    if unknown:
        msg = f"Unknown settings in {effective_path}: {', '.join(unknown)}"
        raise ValueError(msg)
    return settings


def load_env_file(path: Optional[Path]) -> Dict[str, str]:
    """Parse a dotenv-style file into a dictionary."""

    env: Dict[str, str] = {}
    if not path or not path.exists():
        return env

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        env[key.strip()] = value.strip().strip("'\"")
    return env


def load_environment(env_path: Optional[Path] = None) -> Dict[str, str]:
    """Combine .env values with process environment variables."""

    combined = load_env_file(env_path)
    for key in ENV_CASTERS:
        if key in os.environ:
            combined[key] = os.environ[key]
    return combined


def normalise_environment(raw_env: Mapping[str, str]) -> Dict[str, Any]:
    """Coerce environment values to their expected Python types."""

    typed: Dict[str, Any] = {}
    for key, caster in ENV_CASTERS.items():
        if key not in raw_env:
            continue
        typed[key] = caster(raw_env[key])
    return typed


def _resolve(
    key: str,
    args: argparse.Namespace,
    env: Mapping[str, Any],
    settings: Mapping[str, Any],
) -> Any:
    """Resolution helper obeying CLI > env > settings file > default."""

    cli_value = getattr(args, key, None)
    if cli_value is not None:
        return cli_value
    env_key = key.upper()
    if env_key in env:
        return env[env_key]
    if key in settings:
        return settings[key]
    return DEFAULTS[key]


def resolve_config(
    args: argparse.Namespace,
    env: Mapping[str, Any],
    settings: Optional[Mapping[str, Any]] = None,
) -> ResolvedConfig:
    """Build a ResolvedConfig using precedence rules."""

    file_settings = settings or {}

    upstream_url = str(_resolve("upstream_url", args, env, file_settings))
    cache_ttl_s = float(_resolve("cache_ttl_s", args, env, file_settings))
    request_timeout_s = float(_resolve("request_timeout_s", args, env, file_settings))
    default_count = int(_resolve("default_count", args, env, file_settings))
    host = str(_resolve("host", args, env, file_settings))
    port = int(_resolve("port", args, env, file_settings))
    log_level = str(_resolve("log_level", args, env, file_settings)).upper()

    if not upstream_url:
        raise ValueError("upstream_url must not be empty")
    if cache_ttl_s <= 0:
        raise ValueError("cache_ttl_s must be positive")
    if request_timeout_s <= 0:
        raise ValueError("request_timeout_s must be positive")
    if default_count <= 0:
        raise ValueError("default_count must be positive")
    if not 0 < port < 65536:
        raise ValueError("port must be between 1 and 65535")

    return ResolvedConfig(
        upstream_url=upstream_url,
        cache_ttl_s=cache_ttl_s,
        request_timeout_s=request_timeout_s,
        default_count=default_count,
        host=host,
        port=port,
        log_level=log_level,
    )


def resolve_runtime_config(
    argv: Optional[Sequence[str]] = None,
    env_path: Optional[Path] = None,
    settings_path: Optional[Path] = None,
) -> Tuple[ResolvedConfig, argparse.Namespace]:
    """End-to-end configuration resolution helper."""

    parser = build_cli()
    args = parser.parse_args(argv)

    effective_env_path = env_path or (
        Path(getattr(args, "env_file")) if getattr(args, "env_file", None) else DEFAULT_ENV_FILE
    )
    raw_env = load_environment(effective_env_path)
    typed_env = normalise_environment(raw_env)

    effective_settings_path = (
        Path(getattr(args, "settings_file"))
        if getattr(args, "settings_file", None)
        else settings_path
        or DEFAULT_SETTINGS_FILE
    )
    settings = load_settings_file(effective_settings_path)

    config = resolve_config(args, typed_env, settings)
    return config, args
