"""
Utility functions for the reconciliation system.

This module contains helper functions that are used across the system but
are not directly related to statement parsing or reconciliation: logging
setup, environment configuration and output directories.
"""

import os
import pathlib
import logging

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = 'http://localhost:5000'
DEFAULT_LOCALE = 'pt_BR'


def setup_logging(debug=False, log_level='info'):
    """Configure logging for the application."""
    # Determine log level
    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    # Get log file path from environment or use default
    log_file = os.getenv('LOG_FILE', 'reconcile.log')

    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    # Set up logging to file and console
    logging.basicConfig(
        level=level,
        format=format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    return log_file


def get_api_base_url():
    """Base URL of the bank account API (``BANK_ACCOUNT_API_BASE_URL``)."""
    return os.getenv('BANK_ACCOUNT_API_BASE_URL', DEFAULT_API_BASE_URL).rstrip('/')


def get_statement_locale():
    """Locale used to read pasted statement numbers (``STATEMENT_LOCALE``).

    Accepts both ``pt_BR`` and ``pt-BR`` spellings.
    """
    locale = os.getenv('STATEMENT_LOCALE', '').strip()
    if not locale:
        return DEFAULT_LOCALE
    return locale.replace('-', '_')


def ensure_directory(dir_type):
    """Ensure required directories exist.

    Args:
        dir_type (str): Type of directory ('output', 'logs', 'data')

    Returns:
        pathlib.Path: Path to the directory

    Raises:
        ValueError: If dir_type is invalid
    """
    valid_dir_types = ['output', 'logs', 'data']
    if dir_type not in valid_dir_types:
        raise ValueError(f"Invalid directory type: {dir_type}. Expected one of: {valid_dir_types}")

    base_dir = os.getenv('DATA_DIR', os.getcwd())
    dir_path = pathlib.Path(base_dir) / dir_type
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def resolve_output_path(output_path, default_name):
    """
    Resolve an output path that may point at a directory.

    Args:
        output_path (str or pathlib.Path): File or directory path
        default_name (str): File name used when output_path is a directory

    Returns:
        pathlib.Path: File path whose parent directory exists
    """
    output_path = pathlib.Path(output_path)
    if output_path.is_dir() or not output_path.suffix:
        output_path = output_path / default_name

    logger.debug(f"Resolved output path {output_path}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path
