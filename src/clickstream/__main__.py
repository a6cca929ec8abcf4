"""Clickstream pipeline entry point.

    python -m clickstream producer
    python -m clickstream consumer --metrics-port 8081 --log-to-stdout
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from clickstream.common.metrics import PipelineMetrics
from clickstream.config import DEFAULT_CONFIG_FILE, PipelineConfig, load_config
from clickstream.runners import ROLES, run_role
from core.errors import ConfigurationError
from core.logging import setup_logging
from core.utils import generate_worker_id

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)

TRUTHY = ("true", "1", "yes")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="clickstream",
        description="Run the clickstream event producer or consumer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Publish synthetic events
    python -m clickstream producer

    # Store events in MongoDB, metrics on another port
    python -m clickstream consumer --metrics-port 8081

    # Container deployment: JSON lines on stdout
    python -m clickstream consumer --log-to-stdout --json-logs
        """,
    )

    parser.add_argument("role", choices=ROLES, help="Which process to run")

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to the YAML config (default: {DEFAULT_CONFIG_FILE.name} shipped with the package)",
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Port for Prometheus metrics server (default: from config, 8080)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Log directory path (default: from LOG_DIR env var or ./logs)",
    )

    parser.add_argument(
        "--log-to-stdout",
        action="store_true",
        help="Send all log output to stdout only, skipping file handlers. "
        "Can also be set via LOG_TO_STDOUT environment variable.",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines. Can also be set via JSON_LOGS environment variable.",
    )

    return parser.parse_args(argv)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() in TRUTHY


def _setup_logging(args: argparse.Namespace, config: PipelineConfig | None, worker_id: str) -> None:
    logging_config = config.logging_config if config else {}

    log_dir = Path(args.log_dir or os.getenv("LOG_DIR") or logging_config.get("log_dir") or "logs")
    json_logs = (
        args.json_logs
        or _env_flag("JSON_LOGS")
        or str(logging_config.get("json_logs", "false")).lower() in TRUTHY
    )

    setup_logging(
        name="clickstream",
        stage=args.role,
        domain="clickstream",
        log_dir=log_dir,
        json_format=json_logs,
        console_level=getattr(logging, args.log_level),
        worker_id=worker_id,
        log_to_stdout=args.log_to_stdout or _env_flag("LOG_TO_STDOUT"),
    )


def main(argv: list[str] | None = None) -> int:
    global logger

    args = parse_args(argv)
    load_dotenv(Path.cwd() / ".env")
    worker_id = generate_worker_id(f"clickstream-{args.role}")

    overrides = {}
    if args.metrics_port is not None:
        overrides["metrics"] = {"port": args.metrics_port}

    config = None
    config_error = None
    try:
        config = load_config(args.config, overrides=overrides, load_env_file=False)
    except (FileNotFoundError, ConfigurationError) as e:
        config_error = e

    _setup_logging(args, config, worker_id)
    logger = logging.getLogger(__name__)

    if config_error is not None:
        logger.error("Invalid configuration", extra={"error": str(config_error)})
        return 1

    metrics = PipelineMetrics(
        produced_name=config.metrics.produced_counter,
        consumed_name=config.metrics.consumed_counter,
    )
    try:
        actual_port = metrics.start_http_server(
            config.metrics.port, port_fallback=config.metrics.port_fallback
        )
    except OSError as e:
        logger.error(
            "Failed to start metrics server",
            extra={"preferred_port": config.metrics.port, "error": str(e)},
        )
        return 1

    logger.info("Metrics server started", extra={"port": actual_port})

    try:
        asyncio.run(run_role(args.role, config, metrics))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
    except Exception as e:
        logger.error(
            "Fatal error",
            extra={"error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
