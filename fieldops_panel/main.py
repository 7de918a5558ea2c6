"""
Task panel entry point.

Loads configuration, configures logging, and opens a console session for one
task.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from .client import RestTaskClient
from .config import PanelConfig, load_config
from .console import ConsoleSession
from .panel import TaskDetailPanel
from .prompts import ConsolePrompter


def configure_logging(level: str = "info", fmt: str = "text") -> None:
    """Configure structlog with the specified level and format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(level)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


async def open_panel(config: PanelConfig, task_id: int) -> None:
    prompter = ConsolePrompter()
    async with RestTaskClient.from_config(config.backend) as client:
        panel = TaskDetailPanel(client, task_id, prompter=prompter, notifier=prompter)
        session = ConsoleSession(
            panel,
            out=sys.stdout,
            currency=config.display.currency_symbol,
            activity_entries=config.display.activity_entries,
        )
        await session.run()


def run() -> None:
    """CLI entry point for the task panel."""
    parser = argparse.ArgumentParser(description="FieldOps task resource and approval panel")
    parser.add_argument(
        "-c", "--config",
        default="fieldops-panel.yaml",
        help="Path to configuration file (default: fieldops-panel.yaml)",
    )
    parser.add_argument("task_id", type=int, help="Task to open")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.logging.level, config.logging.format)
    log = structlog.get_logger()
    log.info("panel.config_loaded", config_path=args.config, backend=config.backend.url)

    if not config.backend.api_token:
        log.warning("panel.missing_api_token", env=config.backend.api_token_env)

    try:
        asyncio.run(open_panel(config, args.task_id))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
