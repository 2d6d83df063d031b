"""Configuration loader."""

import configparser
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from svnkit.errors import ConfigError

DEFAULT_BINARY = "svn"
DEFAULT_ADMIN_BINARY = "svnadmin"
DEFAULT_CONFIG_PATH = Path("~/.config/svnkit/config")

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """svnkit configuration."""

    binary: str = DEFAULT_BINARY
    admin_binary: str = DEFAULT_ADMIN_BINARY
    username: Optional[str] = None
    password: Optional[str] = None
    config_dir: Optional[Path] = None
    non_interactive: bool = True
    no_auth_cache: bool = False
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {self.timeout}")
        if self.config_dir is not None:
            self.config_dir = Path(self.config_dir)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_config_file(config_path: Path) -> dict[str, str]:
    """
    Parse INI-style config file.

    Returns:
        Dict of config values (DEFAULT keys upper-cased, others section.key)
    """
    if not config_path.exists():
        return {}

    parser = configparser.ConfigParser()
    try:
        parser.read(config_path)
    except configparser.Error as e:
        raise ConfigError(f"Unreadable config file {config_path}: {e}") from e

    config = {}

    for key, value in parser["DEFAULT"].items():
        config[key.upper()] = value

    for section in parser.sections():
        for key, value in parser[section].items():
            config[f"{section}.{key}"] = value

    return config


def get_config(config_path: Optional[Path] = None) -> Config:
    """
    Get current configuration.

    Resolves from:
    1. Built-in defaults
    2. Config file ($SVNKIT_CONFIG or ~/.config/svnkit/config)
    3. Environment variables (SVNKIT_*)

    Args:
        config_path: Explicit config file (overrides $SVNKIT_CONFIG)

    Returns:
        Config object

    Raises:
        ConfigError: If a value is out of range or the file is unreadable
    """
    if config_path is None:
        config_path = Path(os.environ.get("SVNKIT_CONFIG", str(DEFAULT_CONFIG_PATH)))
    config_path = config_path.expanduser()
    file_config = _parse_config_file(config_path)

    def _lookup(name: str) -> Optional[str]:
        return os.environ.get(f"SVNKIT_{name}") or file_config.get(name)

    binary = _lookup("BINARY") or DEFAULT_BINARY
    admin_binary = _lookup("ADMIN_BINARY") or DEFAULT_ADMIN_BINARY
    username = _lookup("USERNAME")
    password = _lookup("PASSWORD")

    config_dir_str = _lookup("CONFIG_DIR")
    config_dir = Path(config_dir_str).expanduser() if config_dir_str else None

    non_interactive_str = _lookup("NON_INTERACTIVE")
    non_interactive = _parse_bool(non_interactive_str) if non_interactive_str else True

    no_auth_cache_str = _lookup("NO_AUTH_CACHE")
    no_auth_cache = _parse_bool(no_auth_cache_str) if no_auth_cache_str else False

    timeout: Optional[float] = None
    timeout_str = _lookup("TIMEOUT")
    if timeout_str:
        try:
            timeout = float(timeout_str)
        except ValueError:
            logger.warning(f"Invalid SVNKIT_TIMEOUT value {timeout_str!r}, running without timeout")

    logger.debug(f"Config file: {config_path}")
    logger.debug(f"Binary: {binary}")
    logger.debug(f"Config dir: {config_dir}")
    logger.debug(f"Timeout: {timeout}")

    return Config(
        binary=binary,
        admin_binary=admin_binary,
        username=username,
        password=password,
        config_dir=config_dir,
        non_interactive=non_interactive,
        no_auth_cache=no_auth_cache,
        timeout=timeout,
    )
