"""
Configuration
=============
YAML run configuration for the landslide CV workflow.

A run config only lists what differs from configs/default.yaml; it is
merged over the defaults key by key. String values may reference
environment variables as ${NAME} or ${NAME:-fallback}.

Usage:
    from landslide_cv.config import load_config, get_section
    cfg = load_config()                          # configs/default.yaml only
    cfg = load_config("configs/quick.yaml")      # quick.yaml over the defaults

    get_section(cfg, 'tuning')['search_space']
"""

import os
import re
import yaml
from pathlib import Path

# Directory holding landslide_cv/ and configs/
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG = PROJECT_ROOT / "configs" / "default.yaml"

_ENV_PATTERN = re.compile(r'\$\{(\w+)(?::-([^}]*))?\}')

_cached_config = None
_cached_path = None


class ConfigError(KeyError):
    """Raised when a required config section or key is missing."""


def _substitute_env(value):
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    if isinstance(value, str):
        return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), m.group(2) or ""), value)
    return value


def _merge(defaults, overrides):
    """Overlay overrides on defaults; nested sections are merged, not replaced."""
    merged = dict(defaults)
    for key, value in overrides.items():
        current = merged.get(key)
        merged[key] = (_merge(current, value)
                       if isinstance(current, dict) and isinstance(value, dict) else value)
    return merged


def _read_yaml(path):
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def _locate(config_path):
    """Resolve a config path given absolute, relative to cwd, or relative to the project."""
    path = Path(config_path)
    if not path.exists() and not path.is_absolute():
        path = PROJECT_ROOT / path
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return path


def load_config(config_path=None, use_cache=True):
    """
    Load the run configuration.

    Args:
        config_path: Run config merged over configs/default.yaml (None = defaults only)
        use_cache: Reuse the last result when called again with the same path

    Returns:
        dict with environment references substituted

    Raises:
        FileNotFoundError: If config_path is given but does not exist
    """
    global _cached_config, _cached_path

    if use_cache and _cached_config is not None and _cached_path == config_path:
        return _cached_config

    config = _read_yaml(DEFAULT_CONFIG) if DEFAULT_CONFIG.exists() else {}
    if config_path is not None:
        run_path = _locate(config_path)
        if run_path.resolve() != DEFAULT_CONFIG.resolve():
            config = _merge(config, _read_yaml(run_path))
    config = _substitute_env(config)

    _cached_config, _cached_path = config, config_path
    return config


def get_section(config, name, required=()):
    """
    Return config[name], checking that the listed keys are present.

    Raises:
        ConfigError: If the section or any required key is missing.
    """
    section = config.get(name)
    if section is None:
        raise ConfigError(f"Missing config section '{name}'")
    missing = [k for k in required if k not in section]
    if missing:
        raise ConfigError(f"Config section '{name}' is missing keys: {missing}")
    return section


def get_path(config, key):
    """
    Get a path from config, resolving relative paths against project root.

    Args:
        config: Config dict from load_config()
        key: Key in config['paths'], e.g. 'data_csv'

    Returns:
        str: Resolved absolute path
    """
    paths = get_section(config, 'paths')
    if key not in paths:
        raise ConfigError(f"No path configured for '{key}'")
    path = Path(paths[key])
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return str(path)


def add_config_argument(parser):
    """Add --config argument to an argparse parser."""
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to YAML config file (default: configs/default.yaml)"
    )
