"""Command line entry points.

``maelnode <program>`` hosts one node program on stdin/stdout. The
``maelnode-<program>`` shims do the same without arguments, for harnesses
that want a single executable per program.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from maelnode import logger
from maelnode.config import NodeConfig, load_config
from maelnode.core.runtime import Node, Program, open_stdin
from maelnode.errors import ConfigError, NodeError
from maelnode.workloads import PROGRAMS

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="maelnode",
        description="Cluster node speaking line-delimited JSON on stdin/stdout.",
    )
    parser.add_argument("program", choices=sorted(PROGRAMS), help="node program to run")
    parser.add_argument("--config", type=Path, default=None, help="path to maelnode.toml")
    parser.add_argument(
        "--gossip-interval",
        type=float,
        default=None,
        metavar="SECONDS",
        help="seconds between gossip rounds (default 0.15)",
    )
    parser.add_argument(
        "--log-level",
        choices=[level.name.lower() for level in logger.Level],
        default=None,
        help="stderr log level",
    )
    return parser


async def serve(program: Program[Any], config: NodeConfig) -> None:
    reader = await open_stdin(config.input.line_limit)
    node = Node(program, reader=reader, output=sys.stdout, config=config)
    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGTERM, node.stop)
    try:
        await node.run()
    finally:
        loop.remove_signal_handler(signal.SIGTERM)


def run(program_name: str, config: NodeConfig) -> int:
    logger.configure(config.logging)
    try:
        asyncio.run(serve(PROGRAMS[program_name](), config))
    except NodeError as exc:
        logger.error(f"{type(exc).__name__}: {exc}", program=program_name)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.warn("Interrupted", program=program_name)
        return EXIT_INTERRUPTED
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config).with_overrides(
            gossip_interval=args.gossip_interval,
            log_level=args.log_level,
        )
    except (ConfigError, FileNotFoundError) as exc:
        logger.error(f"Invalid configuration: {exc}")
        return EXIT_FAILURE
    return run(args.program, config)


def _shim(program_name: str) -> int:
    try:
        config = load_config()
    except ConfigError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return EXIT_FAILURE
    return run(program_name, config)


def broadcast() -> int:
    return _shim("broadcast")


def echo() -> int:
    return _shim("echo")


def unique_ids() -> int:
    return _shim("unique-ids")


def g_counter() -> int:
    return _shim("g-counter")


def kafka() -> int:
    return _shim("kafka")
