# utils.py
"""
Utility functions for the tank runner.

Logging setup and configuration loading live here: they are used by the
entry point and the tests but belong neither to the physics nor to any host.
"""
import logging
import logging.handlers
import json
import os
from typing import Dict, Any, Optional

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary with an optional "logging" section holding
#       "level", "format" and "log_file". A null "log_file" disables the
#       file handler.
#   - Side Effects: Replaces the root logger's handlers with a console
#     handler and, if enabled, a rotating file handler.
#
# load_config(path: str) -> Dict[str, Any]:
#   - Outputs: The parsed JSON document, with every known section present
#     (missing sections become empty dictionaries).

CONFIG_SECTIONS = (
    'simulation_parameters', 'left_particles', 'right_particles',
    'run_control', 'logging',
)

DEFAULT_LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the root logger from the "logging" section of the config.
    """
    log_config = config.get('logging') or {}
    log_level = log_config.get('level', 'INFO').upper()
    formatter = logging.Formatter(log_config.get('format', DEFAULT_LOG_FORMAT))
    log_file_path: Optional[str] = log_config.get('log_file', 'logs/tank.log')

    logger = logging.getLogger()
    logger.setLevel(log_level)
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        # 1MB per file, 5 backups
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=1024*1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level {log_level}, log file {log_file_path or 'disabled'}.")


def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file and fills in missing sections."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise

    for section in CONFIG_SECTIONS:
        if config.get(section) is None:
            config[section] = {}
    logging.info("Configuration loaded successfully.")
    return config
