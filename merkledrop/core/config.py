"""
Configuration for merkledrop.

Defines storage and logging locations and generator defaults.
Values can be overridden from MERKLEDROP_* environment variables (or a .env
file) through load_config().
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

ENV_PREFIX = "MERKLEDROP_"


@dataclass
class AirdropConfig:
    """Distributor-wide configuration parameters"""

    # Persistence
    persist: bool = False
    data_dir: Path = Path("data")
    db_name: str = "merkledrop.db"

    # Logging
    log_level: int = logging.INFO
    log_dir: Path = Path("logs")
    log_to_file: bool = False

    # Off-line generator
    artifact_name: str = field(default="distribution.json")

    @property
    def log_file(self) -> Optional[Path]:
        """Log file path when file logging is on, else None"""
        return self.log_dir / "merkledrop.log" if self.log_to_file else None

    def ensure_dirs(self):
        """Create directories this configuration writes into"""
        if self.persist:
            self.data_dir.mkdir(exist_ok=True, parents=True)
        if self.log_to_file:
            self.log_dir.mkdir(exist_ok=True, parents=True)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(env_file: Optional[str] = None) -> AirdropConfig:
    """
    Load configuration from the environment or use defaults.

    Args:
        env_file: Optional .env file; variables already set in the
            environment take precedence over it

    Returns:
        AirdropConfig instance
    """
    if env_file:
        load_dotenv(env_file, override=False)

    config = AirdropConfig()
    env = os.environ

    if f"{ENV_PREFIX}PERSIST" in env:
        config.persist = _env_bool(env[f"{ENV_PREFIX}PERSIST"])
    if f"{ENV_PREFIX}DATA_DIR" in env:
        config.data_dir = Path(env[f"{ENV_PREFIX}DATA_DIR"]).expanduser()
    if f"{ENV_PREFIX}DB_NAME" in env:
        config.db_name = env[f"{ENV_PREFIX}DB_NAME"]
    if f"{ENV_PREFIX}LOG_LEVEL" in env:
        level = logging.getLevelName(env[f"{ENV_PREFIX}LOG_LEVEL"].upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {env[f'{ENV_PREFIX}LOG_LEVEL']}")
        config.log_level = level
    if f"{ENV_PREFIX}LOG_DIR" in env:
        config.log_dir = Path(env[f"{ENV_PREFIX}LOG_DIR"]).expanduser()
    if f"{ENV_PREFIX}LOG_TO_FILE" in env:
        config.log_to_file = _env_bool(env[f"{ENV_PREFIX}LOG_TO_FILE"])

    return config
