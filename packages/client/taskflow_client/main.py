"""
Client entry point.

Loads configuration, configures logging, signs in, and prints a summary of
what the signed-in user can see.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional

import httpx
import structlog

from .client import TaskFlowClient
from .config import ClientConfig, load_config


def configure_logging(level: str = "info", fmt: str = "json") -> None:
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
    )


async def connect(
    config: ClientConfig,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TaskFlowClient:
    """Build a client from config and sign in with the configured credentials.

    Without a configured email the client stays anonymous. A configured email
    whose password variable is unset is a configuration error.
    """
    configure_logging(config.logging.level, config.logging.format)
    client = TaskFlowClient.from_config(config, transport=transport)

    credentials = config.credentials
    if credentials.email is None:
        return client

    password = credentials.password
    if password is None:
        await client.aclose()
        raise ValueError(f"Environment variable {credentials.password_env} is not set")

    try:
        await client.login(credentials.email, password)
    except httpx.HTTPError:
        await client.aclose()
        raise
    return client


async def _summarize(config: ClientConfig) -> None:
    log = structlog.get_logger()
    async with await connect(config) as client:
        user = await client.current_user()
        if user is None:
            log.warning("client.not_signed_in", server=config.server.url)
            return
        dashboard = await client.get_dashboard()
        for group in dashboard.tasks_by_organization:
            tasks = sum(len(p.tasks) for p in group.projects)
            print(f"{group.organization_name}: {len(group.projects)} projects, {tasks} tasks")
        await client.logout()


def run() -> None:
    """CLI entry point for the client."""
    parser = argparse.ArgumentParser(description="TaskFlow client")
    parser.add_argument(
        "-c", "--config",
        default="taskflow-client.yaml",
        help="Path to configuration file (default: taskflow-client.yaml)",
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(_summarize(config))
    except (ValueError, httpx.HTTPError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
