"""
Helper functions shared across the package
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from repeatforms.helpers import cli
from repeatforms.helpers.config import config

logger = logging.getLogger(__name__)

_console = Console(color_system="standard")

LOG_FILE_MAX_BYTES = 10000000  # 10MB
LOG_FORMAT = (
    "%(asctime)s  - %(process)d - %(name)s - %(levelname)s - %(message)s"
    " - [%(filename)s:%(lineno)d]"
)


def get_console() -> Console:
    """
    Returns the console shared by the package.
    """
    return _console


def configure_console_logging(level: int = logging.INFO) -> None:
    """
    Routes log records to the console through rich.

    Args:
        level (int, optional): The root log level. Defaults to logging.INFO.

    Returns:
        None
    """
    logargs = {
        "level": level,
        # "format": "%(asctime)s - %(process)d - %(name)s - %(levelname)s - %(message)s",
        "format": "%(message)s",
        "handlers": [RichHandler(rich_tracebacks=True, console=_console)],
    }
    logging.basicConfig(**logargs)


def get_log_file(config_file: Path, module_name: str) -> Optional[Path]:
    """
    Resolves the log file of a module from the `logging` section.

    Relative paths are taken from `repo_root` in the `general` section.

    Args:
        config_file (Path): The path to the configuration file.
        module_name (str): The key of the module in the `logging` section.

    Returns:
        Optional[Path]: The log file, None if the module has no log file.
    """
    try:
        log_params = config(config_file, "logging")
    except ValueError:
        return None

    log_file_r = log_params.get(module_name)
    if not log_file_r:
        return None

    log_file = Path(log_file_r)
    if log_file.is_absolute():
        return log_file

    repo_root = Path(config(config_file, "general")["repo_root"])
    return repo_root / log_file


def archive_log_file(
    log_file: Path, max_bytes: int = LOG_FILE_MAX_BYTES
) -> Optional[Path]:
    """
    Moves a log file larger than `max_bytes` to the `archive` directory next to it.

    Returns:
        Optional[Path]: The archived file, None if nothing was moved.
    """
    if not log_file.exists() or log_file.stat().st_size <= max_bytes:
        return None

    timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
    archive_file = log_file.parent / "archive" / f"{log_file.stem}_{timestamp}.log"
    archive_file.parent.mkdir(parents=True, exist_ok=True)
    log_file.rename(archive_file)

    return archive_file


def configure_logging(
    config_file: Path,
    module_name: str = "repeatforms",
    reporting_logger: Optional[logging.Logger] = None,
) -> Optional[Path]:
    """
    Adds a file handler to the root logger, as configured in the `logging`
    section of the configuration file.

    Calling it again for the same log file does not add a second handler.

    Args:
        config_file (Path): The path to the configuration file.
        module_name (str, optional): The key of the module in the `logging`
            section. Defaults to "repeatforms".
        reporting_logger (Optional[logging.Logger], optional): Logger
            reporting the log file in use. Defaults to this module's logger.

    Returns:
        Optional[Path]: The log file, None if file logging is not configured.
    """
    log = reporting_logger or logger

    log_file = get_log_file(config_file, module_name)
    if log_file is None:
        log.debug(f"No log file configured for {module_name} in {config_file}")
        return None

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == (
            os.path.abspath(log_file)
        ):
            return log_file

    archive_file = archive_log_file(log_file)
    if archive_file is not None:
        log.info(f"Rotated log file to {archive_file}")

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file, mode="a")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger.addHandler(file_handler)
    log.info(f"Logging to {log_file}")

    return log_file


def get_config_file_path(config_file: Optional[Union[str, Path]] = None) -> Path:
    """
    Returns the configuration file to use.

    Args:
        config_file (Optional[Union[str, Path]], optional): An explicit
            configuration file. Defaults to `config.ini` at the repository root.

    Returns:
        Path: The path to the configuration file.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
    """
    if config_file is None:
        config_file_path = cli.get_repo_root() / "config.ini"
    else:
        config_file_path = Path(config_file)

    if not config_file_path.is_file():
        raise FileNotFoundError(f"Config file not found at {config_file_path}")

    return config_file_path
