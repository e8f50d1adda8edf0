"""curlbridge core - config loading, environments, request files."""

import json
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from curlbridge.errors import ConfigurationError
from curlbridge.models import Environment, Request, Settings

GLOBAL_DIR = Path.home() / ".curlbridge"
GLOBAL_CONFIG = GLOBAL_DIR / "config.yaml"
GLOBAL_HISTORY = GLOBAL_DIR / "history.json"

CWD_CONFIG_CANDIDATES = [
    ".curlbridge.yaml",
    ".curlbridge.yml",
    "curlbridge.yaml",
    "curlbridge.yml",
]


def resolve_path(
    candidates: list[Path],
    default: Path | None = None,
) -> Path | None:
    """Return the first existing path from candidates, else default."""
    for p in candidates:
        if p.exists():
            return p.resolve()
    return default


def resolve_config_path(config_file: str | None) -> Path | None:
    """Find the config file to use.

    Resolution order:
      1. Explicit -c flag (hard — no fallthrough if missing)
      2. .curlbridge.yaml (variants) in CWD
      3. ~/.curlbridge/config.yaml
    """
    if config_file:
        return resolve_path([Path(config_file)])
    return resolve_path([Path(c) for c in CWD_CONFIG_CANDIDATES] + [GLOBAL_CONFIG])


def _read_yaml(path: Path) -> Any:
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e


def load_config(config_path: str | Path | None) -> dict:
    """Load YAML config file. Returns empty sections if not found.

    Stores '_config_dir' so env_file can be resolved relative to the config.
    """
    empty = {"defaults": {}, "environments": {}, "active_environment": None, "_config_dir": None}
    if config_path is None:
        return empty
    path = Path(config_path)
    if not path.exists():
        return empty
    data = _read_yaml(path) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must be a mapping")
    return {
        "defaults": data.get("defaults") or {},
        "environments": data.get("environments") or {},
        "active_environment": data.get("active_environment"),
        "_config_dir": path.resolve().parent,
    }


def load_env(env_file: str | None, base_dir: str | Path | None = None) -> dict[str, str]:
    """Load .env file and merge with os.environ (.env values win)."""
    env = dict(os.environ)
    if env_file:
        dotenv_path = Path(base_dir or ".") / env_file
        if dotenv_path.exists():
            dotenv_vars = dotenv_values(str(dotenv_path))
            env.update({k: v for k, v in dotenv_vars.items() if v is not None})
    return env


def resolve_value(value: str | None, env: dict[str, str]) -> str | None:
    """Resolve $VAR and ${VAR} references in a config value.

    Unknown names are left as written.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, m.group(0))

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", _replace, value)


def load_settings(config: dict, env: dict[str, str] | None = None) -> Settings:
    """Settings from the config 'defaults' section, ${VAR}s resolved in headers."""
    defaults = dict(config.get("defaults") or {})
    if env is not None and defaults.get("default_headers"):
        defaults["default_headers"] = {
            k: resolve_value(str(v), env) for k, v in defaults["default_headers"].items()
        }
    return Settings.from_dict(defaults)


def load_environments(config: dict, env: dict[str, str]) -> dict[str, Environment]:
    """Build Environment objects from the config 'environments' section.

    Variable values may reference ${VAR} from the shell or the env_file.
    """
    environments: dict[str, Environment] = {}
    for name, env_cfg in (config.get("environments") or {}).items():
        env_cfg = env_cfg or {}
        record: dict[str, Any] = {
            "id": env_cfg.get("id") or str(name),
            "name": str(name),
            "description": env_cfg.get("description") or "",
            "variables": {},
        }
        for key, var in (env_cfg.get("variables") or {}).items():
            if isinstance(var, dict):
                record["variables"][key] = {
                    "value": resolve_value(_as_text(var.get("value")), env),
                    "description": var.get("description") or "",
                }
            else:
                record["variables"][key] = resolve_value(_as_text(var), env)
        environments[str(name)] = Environment.from_dict(record)
    return environments


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def select_environment(
    environments: dict[str, Environment],
    name: str | None,
    config: dict,
) -> Environment | None:
    """Pick the active environment: explicit name, then config's active_environment.

    Raises ConfigurationError if a name is given that does not exist.
    """
    chosen = name or config.get("active_environment")
    if not chosen:
        return None
    if chosen not in environments:
        available = ", ".join(sorted(environments)) or "none defined"
        raise ConfigurationError(f"Environment '{chosen}' not found ({available})")
    return environments[chosen]


def environment_from_dotenv(path: str | Path) -> Environment:
    """Read a .env file as an Environment named after the file."""
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Env file not found: {p}")
    env = Environment(name=p.name)
    for key, value in dotenv_values(str(p)).items():
        if value is not None:
            env.set_variable(key, value)
    return env


def load_request_file(path: str | Path) -> Request:
    """Load a stored Request record from a .json or .yaml file."""
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Request file not found: {p}")
    if p.suffix in (".yaml", ".yml"):
        data = _read_yaml(p)
    else:
        try:
            data = json.loads(p.read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Request file {p} must contain a mapping")
    return Request.from_dict(data)
