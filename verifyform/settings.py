# verifyform/settings.py
from __future__ import annotations
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LOG_FORMAT: str = '%(asctime)s - %(levelname)s - %(message)s'
LOG_LEVELS: tuple[str, ...] = ('DEBUG', 'INFO', 'WARNING', 'ERROR')

# en, email + phone, no consents, 3y residence, 3y employment, education, licenses, checkbox signature
DEFAULT_COLLECTION_KEY: str = 'en-EP-N-R3-E3-E-P-C'
DEFAULT_PORT: int = 8080


@dataclass(frozen=True)
class EnvironmentConfig:
    default_collection_key: str = DEFAULT_COLLECTION_KEY
    port: int = DEFAULT_PORT
    dev_mode: bool = False
    log_level: str = 'INFO'
    storage_secret: str = 'a_very_secure_secret_key_for_local_dev'


def load_config(environ: Mapping[str, str] | None = None) -> EnvironmentConfig:
    """Reads settings from the environment, falling back to defaults for missing or bad values."""
    env = os.environ if environ is None else environ
    defaults = EnvironmentConfig()

    port = defaults.port
    raw_port = env.get('PORT')
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError:
            logger.warning(f"Ignoring invalid PORT value {raw_port!r}; using {defaults.port}.")

    log_level = env.get('LOG_LEVEL', defaults.log_level).upper()
    if log_level not in LOG_LEVELS:
        logger.warning(f"Ignoring unknown LOG_LEVEL {log_level!r}; using {defaults.log_level}.")
        log_level = defaults.log_level

    return EnvironmentConfig(
        default_collection_key=env.get('DEFAULT_COLLECTION_KEY') or defaults.default_collection_key,
        port=port,
        dev_mode=env.get('DEV_MODE', '').strip().lower() == 'true',
        log_level=log_level,
        storage_secret=env.get('STORAGE_SECRET') or defaults.storage_secret,
    )


def configure_logging(config: EnvironmentConfig) -> None:
    level = logging.DEBUG if config.dev_mode else getattr(logging, config.log_level)
    logging.basicConfig(level=level, format=LOG_FORMAT)
