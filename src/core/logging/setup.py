"""Logging setup and configuration."""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_LOG_DIR = Path("logs")
DEFAULT_ROTATION_WHEN = "midnight"
DEFAULT_BACKUP_COUNT = 7
DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

# Client libraries that log every reconnect and metadata refresh at INFO
NOISY_LOGGERS = [
    "aiokafka",
    "kafka",
    "pymongo",
]

PLAIN_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


def get_log_file_path(
    log_dir: Path,
    domain: str | None = None,
    stage: str | None = None,
) -> Path:
    """
    Build the active log file path for one process role.

    Structure: {log_dir}/{domain}/{domain}_{stage}.log. Rotated files get a
    date suffix from TimedRotatingFileHandler.

    Examples:
        logs/clickstream/clickstream_producer.log
        logs/clickstream/clickstream_consumer.log
    """
    name_parts = [part for part in (domain, stage) if part] or ["pipeline"]
    filename = f"{'_'.join(name_parts)}.log"

    if domain:
        return log_dir / domain / filename
    return log_dir / filename


def setup_logging(
    name: str = "clickstream",
    stage: str | None = None,
    domain: str | None = None,
    log_dir: Path | None = None,
    json_format: bool = True,
    console_level: int = DEFAULT_CONSOLE_LEVEL,
    file_level: int = DEFAULT_FILE_LEVEL,
    rotation_when: str = DEFAULT_ROTATION_WHEN,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
    worker_id: str | None = None,
    log_to_stdout: bool = False,
) -> logging.Logger:
    """
    Configure the root logger for a producer or consumer process.

    Args:
        name: Logger name to return
        stage: Process role for the log context and file name (producer/consumer)
        domain: Pipeline domain for the log context and folder
        log_dir: Directory for log files (default: ./logs)
        json_format: JSON lines in the file, or on stdout in stdout-only mode
        console_level: Console handler level (default: INFO)
        file_level: File handler level (default: DEBUG)
        rotation_when: TimedRotatingFileHandler 'when' ('midnight', 'H', ...)
        backup_count: Number of rotated files to keep
        suppress_noisy: Quiet down Kafka and MongoDB client loggers
        worker_id: Worker identifier for context
        log_to_stdout: Send everything to stdout and skip the file handler.
            Containers collect logs from stdout.

    Returns:
        Configured logger instance
    """
    log_dir = log_dir or DEFAULT_LOG_DIR

    context = {"worker_id": worker_id, "stage": stage, "domain": domain}
    set_log_context(**{key: value for key, value in context.items() if value})

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)

    log_file = None
    if log_to_stdout:
        console_handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    else:
        console_handler.setFormatter(ConsoleFormatter())

        log_file = get_log_file_path(log_dir, domain=domain, stage=stage)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = TimedRotatingFileHandler(
            log_file,
            when=rotation_when,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FILE_FORMAT))
        root_logger.addHandler(file_handler)

    root_logger.addHandler(console_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    if log_file is None:
        logger.debug("Logging initialized: stdout-only mode")
    else:
        logger.debug(f"Logging initialized: file={log_file}, json={json_format}")

    return logger


def log_worker_startup(
    logger: logging.Logger,
    worker_name: str,
    kafka_bootstrap_servers: str,
    topic: str | None = None,
    consumer_group: str | None = None,
    extra_config: dict | None = None,
) -> None:
    """
    Log the settings a process starts with.

    The first record carries them as structured fields; the following lines
    repeat extra_config for people reading the console.
    """
    logger.info(
        "Starting %s",
        worker_name,
        extra={
            "bootstrap_servers": kafka_bootstrap_servers,
            "topic": topic,
            "group_id": consumer_group,
        },
    )
    for key, value in (extra_config or {}).items():
        logger.info("  %s: %s", key, value)
