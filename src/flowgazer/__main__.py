"""CLI entry point for the Flowgazer timeline client.

Connects to a relay, subscribes the selected view, and prints it to
stdout whenever the view router refreshes. A Prometheus metrics server
runs alongside when enabled in the config.

Examples:
    ```bash
    python -m flowgazer
    python -m flowgazer --relay wss://relay.example --view following
    PRIVATE_KEY=nsec1... python -m flowgazer --view myposts --log-level DEBUG
    python -m flowgazer --config config/flowgazer.yaml --no-auto-update
    ```
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any

from nostr_sdk import NostrSdkError

from flowgazer.client import ConsoleSurface, FlowgazerClient, FlowgazerConfig
from flowgazer.core import ConfigurationError, ConnectivityError, Logger, MetricsServer, setup_logging
from flowgazer.models.constants import ViewName
from flowgazer.utils.keys import ENV_PRIVATE_KEY, IdentityProvider, KeysIdentity, ReadOnlyIdentity


DEFAULT_CONFIG = Path("config") / "flowgazer.yaml"

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the client."""
    parser = argparse.ArgumentParser(
        prog="flowgazer",
        description="Flowgazer Nostr timeline client",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )

    parser.add_argument(
        "--relay",
        help="Relay URL (default: last used relay, then the configured one)",
    )

    parser.add_argument(
        "--view",
        choices=[view.value for view in ViewName],
        default=ViewName.GLOBAL.value,
        help="Initial view (default: global)",
    )

    parser.add_argument(
        "--pubkey",
        help=f"Read-only identity when {ENV_PRIVATE_KEY} is not set",
    )

    parser.add_argument(
        "--state-file",
        type=Path,
        help="YAML file remembering the last relay (overrides config)",
    )

    parser.add_argument(
        "--no-auto-update",
        action="store_true",
        help="Only render on explicit refresh (view switch, publish)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: logging.level from the config, else INFO)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> FlowgazerConfig:
    """Load the YAML config (if present) and apply CLI overrides."""
    data: dict[str, Any] = {}
    if args.config.exists():
        data = FlowgazerConfig.from_yaml(args.config).model_dump()
    else:
        logger.warning("config_not_found", path=str(args.config))

    if args.state_file is not None:
        data["state_file"] = args.state_file
    if args.no_auto_update:
        data.setdefault("views", {})["auto_update"] = False
    return FlowgazerConfig.from_dict(data)


def build_identity(pubkey: str | None) -> IdentityProvider:
    """Signing identity from the environment, else a read-only one."""
    if os.environ.get(ENV_PRIVATE_KEY):
        return KeysIdentity.from_env()
    return ReadOnlyIdentity(pubkey)


async def run_client(client: FlowgazerClient, url: str | None, metrics: MetricsServer) -> int:
    """Run *client* until SIGINT/SIGTERM.

    Returns:
        Exit code: 0 for a clean shutdown, 1 if the relay was unreachable.
    """
    shutdown = asyncio.Event()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    await metrics.start()
    if client.config.metrics.enabled:
        logger.info(
            "metrics_server_started",
            host=client.config.metrics.host,
            port=client.config.metrics.port,
            path=client.config.metrics.path,
        )

    try:
        await client.start(url)
        await shutdown.wait()
        return 0
    except ConnectivityError as e:
        logger.error("connection_failed", error=str(e))
        return 1
    finally:
        await client.close()
        await metrics.stop()


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, assemble the client, and run it."""
    args = parse_args(argv)
    setup_logging(args.log_level or "INFO")

    try:
        config = build_config(args)
        identity = build_identity(args.pubkey)
    except (ConfigurationError, ValueError, NostrSdkError) as e:
        logger.error("config_invalid", error=str(e))
        return 2

    if args.log_level is None:
        logging.root.setLevel(config.logging.level)

    surface = ConsoleSurface()
    client = FlowgazerClient(surface, config, identity=identity)
    surface.attach(client)
    client.router.switch_view(ViewName(args.view))

    try:
        return await run_client(client, args.relay, MetricsServer(config.metrics))
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
