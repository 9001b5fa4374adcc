# Logging_Config.py
# Description: Loguru sink configuration for gridsync
#
# Imports
import sys
from pathlib import Path
from typing import Optional, Union
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from gridsync.Metrics.metrics_logger import METRIC_LEVEL
#
########################################################################################################################
#
# Functions:

def _ensure_log_dir_exists(file_path: Union[str, Path]) -> Path:
    """Ensure the directory for the log file exists."""
    expanded_path = Path(file_path).expanduser()
    expanded_path.parent.mkdir(parents=True, exist_ok=True)
    return expanded_path


def _is_metric_record(record) -> bool:
    return "event" in record["extra"]


def setup_logger(
    log_level: str = "INFO",
    console_format: str = "{time:YYYY-MM-DD HH:mm:ss} - {level} - {message}",
    app_log_path: Optional[Union[str, Path]] = None,
    metrics_log_path: Optional[Union[str, Path]] = None,
):
    """
    Sets up Loguru sinks for console, a standard application log, and a JSON metrics log.

    Args:
        log_level (str): The minimum log level to output (e.g., "DEBUG", "INFO").
        console_format (str): The format string for console output.
        app_log_path: Path for the standard text log file. If None, this sink is disabled.
        metrics_log_path: Path for the structured JSON metrics log. If None, this sink is disabled.

    Returns:
        The configured logger instance.
    """
    # Start with a clean slate
    logger.remove()

    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format=console_format
    )

    if app_log_path:
        path = _ensure_log_dir_exists(app_log_path)
        logger.add(
            str(path),
            level=log_level.upper(),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="7 days",
            enqueue=True,
            backtrace=True,
        )
        logger.info(f"Application logs will be written to: {path}")

    if metrics_log_path:
        path = _ensure_log_dir_exists(metrics_log_path)
        logger.add(
            str(path),
            level=METRIC_LEVEL,
            filter=_is_metric_record,
            serialize=True,
            rotation="10 MB",
            retention=5,
            enqueue=True,
        )
        logger.info(f"JSON metrics logs will be written to: {path}")

    return logger


def setup_logger_from_config():
    """Configures sinks from the [logging] section of the gridsync config."""
    from gridsync.config import get_setting, get_log_file_path, get_metrics_file_path
    return setup_logger(
        log_level=get_setting("logging", "log_level", "INFO"),
        app_log_path=get_log_file_path(),
        metrics_log_path=get_metrics_file_path(),
    )

#
# End of Logging_Config.py
########################################################################################################################
