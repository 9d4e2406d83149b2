"""
Configuration Loader

Loads and parses the YAML configuration file, merging defaults with the
values it sets.
"""

import os
import logging
from typing import Dict, Any

import yaml

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "alternate": "",
    "server": "",
    "port": 6667,
    "admin_pass": "",
    "data_dir": "./data",
    "links_timeout": 120,
    "notice_sources": ["dal.net", "upenn.edu"],
}


class ConfigError(Exception):
    """Exception raised for configuration loading errors."""
    pass


def load_config(path: str) -> Dict[str, Any]:
    """
    Load and parse the configuration file.

    Args:
        path: Path to the config.yaml file

    Returns:
        Dictionary of settings with defaults filled in

    Raises:
        ConfigError: If file cannot be loaded or parsed
    """
    path = os.path.expanduser(path)

    if not os.path.isfile(path):
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {e}")

    if not data:
        raise ConfigError("Config file is empty")
    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a mapping")

    return _process_config(data)


def _process_config(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge defaults into raw config data and check required keys.

    Args:
        data: Raw parsed YAML data

    Returns:
        Processed configuration
    """
    nick = data.get("nick")
    if not nick:
        raise ConfigError("No nick defined in config")

    config = dict(DEFAULTS)
    config["nick"] = nick

    for key in DEFAULTS:
        value = data.get(key)
        if value is not None:
            config[key] = value

    try:
        config["port"] = int(config["port"])
        config["links_timeout"] = float(config["links_timeout"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric setting: {e}")

    sources = config["notice_sources"]
    if isinstance(sources, str):
        sources = [sources]
    config["notice_sources"] = [str(s) for s in sources]

    unknown = sorted(set(data) - set(DEFAULTS) - {"nick"})
    if unknown:
        logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

    return config


def default_config(nick: str = "rnexus", **overrides: Any) -> Dict[str, Any]:
    """Build a processed config without a file, e.g. for one-shot CLI runs."""
    data = {"nick": nick}
    data.update(overrides)
    return _process_config(data)
