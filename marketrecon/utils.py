"""
Utility functions for the marketplace reconciliation tool.

This module contains helpers that are shared by the command line entry point
and the export functions but are not part of parsing or matching.
"""

import os
import pathlib
import logging

logger = logging.getLogger(__name__)

def setup_logging(debug=False, log_level='info'):
    """Configure logging for the application.

    Args:
        debug (bool): Force DEBUG level regardless of log_level
        log_level (str): Name of the level to use when debug is off

    Returns:
        str: Path of the log file that was configured
    """
    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    log_file = os.getenv('LOG_FILE', 'debug.log')

    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir, exist_ok=True)

    logging.basicConfig(
        level=level,
        format=format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ],
        force=True
    )

    return log_file

def ensure_directory(dir_type):
    """Ensure a working directory exists under DATA_DIR.

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

def resolve_output_file(output_path, default_name):
    """Turn a directory (or suffix-less path) into a file path inside it.

    The parent directory is created if needed.
    """
    output_path = pathlib.Path(output_path)
    if output_path.is_dir() or not output_path.suffix:
        output_path = output_path / default_name

    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path
