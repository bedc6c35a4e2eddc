"""Entry point for the fee engine.

Usage:
    python -m fee_engine replay ticks.jsonl
    python -m fee_engine --config config/engine.yaml serve
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING

from fee_engine.core.config import EngineConfig, load_config
from fee_engine.core.engine import FeeEngine
from fee_engine.domain.errors import FeeEngineError
from fee_engine.keeper.keeper import Keeper, wall_clock
from fee_engine.recording.recorder import EventRecorder
from fee_engine.replay.runner import ReplayRunner

if TYPE_CHECKING:
    from fee_engine.replay.runner import ReplayResult


def setup_logging(level: str, log_file: str | None = None) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file to write logs to
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        handlers=handlers,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Volatility-driven dynamic fee engine",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration file",
    )

    parser.add_argument(
        "--log-level",
        "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (overrides config)",
    )

    parser.add_argument(
        "--log-file",
        type=str,
        help="Log file path",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load config and validate without running",
    )

    subparsers = parser.add_subparsers(dest="command")

    replay = subparsers.add_parser(
        "replay",
        help="Replay a JSONL tick file through the engine",
    )
    replay.add_argument("input", type=str, help="Path to JSONL tick file")
    replay.add_argument(
        "--market",
        "-M",
        type=str,
        default="replay",
        help="Market ID to register the stream under",
    )

    serve = subparsers.add_parser(
        "serve",
        help="Run the API server (and the keeper if enabled)",
    )
    serve.add_argument("--port", "-p", type=int, help="API port (overrides config)")

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> EngineConfig:
    """Build configuration from file and command line args.

    Args:
        args: Parsed command line arguments

    Returns:
        Merged configuration
    """
    config = load_config(args.config)

    if args.log_level:
        config.log_level = args.log_level

    if args.log_file:
        config.log_file = args.log_file

    if getattr(args, "port", None):
        config.api_port = args.port

    return config


def build_recorder(config: EngineConfig) -> EventRecorder | None:
    """Create and start an event recorder if recording is enabled."""
    if not config.recording.enabled:
        return None
    recorder = EventRecorder(output_dir=config.recording.output_dir)
    recorder.start(config=config.model_dump(mode="json"))
    return recorder


def seed_markets(
    engine: FeeEngine,
    config: EngineConfig,
    clock: Callable[[], int] = wall_clock,
) -> list[str]:
    """Register the markets listed in the configuration.

    Markets without a timestamp are seeded at the current clock time.

    Returns:
        IDs of the markets registered

    Raises:
        FeeEngineError: If a market exists or its seed is out of range
    """
    registered: list[str] = []
    for seed in config.markets:
        timestamp = seed.timestamp if seed.timestamp is not None else clock()
        engine.on_market_created(seed.market_id, seed.initial_tick, timestamp)
        registered.append(seed.market_id)
    return registered


def format_replay(result: ReplayResult) -> str:
    """Render a replay summary for the terminal."""
    state = result.final_state
    lines = [
        f"Market:        {result.market_id}",
        f"Observations:  {result.observations}",
        f"Skipped:       {result.skipped}",
        f"Updates:       {result.update_count}",
        f"Volatility:    {state.current_vol} bps ({state.current_vol / 100:.2f}%)",
        f"Regime:        {state.regime.label}",
        f"EMA 7d:        {state.ema_7d} bps",
        f"EMA 30d:       {state.ema_30d} bps",
        f"Fee:           {result.final_fee} bps",
    ]
    for ts, old, new in result.regime_changes():
        lines.append(f"Regime change at {ts}: {old.label} -> {new.label}")
    return "\n".join(lines)


def run_replay(config: EngineConfig, input_path: str, market_id: str) -> int:
    """Replay a tick file and print the final state.

    Returns:
        Exit code
    """
    recorder = build_recorder(config)
    engine = FeeEngine.from_config(config, recorder=recorder)
    try:
        result = ReplayRunner(
            engine, market_id=market_id, caller=config.keeper.caller
        ).run_file(input_path)
    except (FeeEngineError, ValueError, OSError) as e:
        logging.error(f"Replay failed: {e}")
        return 1
    finally:
        if recorder:
            recorder.stop()

    print(format_replay(result))
    return 0


async def serve_async(config: EngineConfig) -> int:
    """Run the API server and, if enabled, the keeper.

    Markets listed in the configuration are registered before the server
    starts. Further markets and trades arrive through the host routes.

    Returns:
        Exit code
    """
    import uvicorn

    from fee_engine.monitoring.api.routes import create_app
    from fee_engine.monitoring.metrics import init_metrics

    logger = logging.getLogger(__name__)
    recorder = build_recorder(config)
    engine = FeeEngine.from_config(config, recorder=recorder)
    try:
        seeded = seed_markets(engine, config)
    except FeeEngineError as e:
        logger.error(f"Market seeding failed: {e}")
        if recorder:
            recorder.stop()
        return 1
    if seeded:
        logger.info(f"Registered {len(seeded)} markets: {seeded}")

    metrics = init_metrics()
    metrics.set_info(governance=config.governance)

    keeper_task: asyncio.Task[None] | None = None
    keeper: Keeper | None = None
    keeper_markets = config.keeper_market_ids()
    if config.keeper.enabled and not keeper_markets:
        logger.warning("Keeper enabled but no markets configured; not starting it")
    elif config.keeper.enabled:
        keeper = Keeper(
            engine,
            keeper_markets,
            caller=config.keeper.caller,
            poll_interval_seconds=config.keeper.poll_interval_seconds,
            metrics=metrics,
        )
        keeper_task = asyncio.create_task(keeper.run())

    app = create_app(engine, metrics=metrics)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=config.api_host,
            port=config.api_port or 8080,
            log_level="warning",
        )
    )

    try:
        await server.serve()
        return 0
    except Exception as e:
        logger.error(f"API server error: {e}", exc_info=True)
        return 1
    finally:
        if keeper and keeper_task:
            keeper.stop()
            await keeper_task
        if recorder:
            recorder.stop()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = build_config(args)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config.log_level, config.log_file)

    logger = logging.getLogger(__name__)
    logger.info("Fee engine starting")
    logger.info(f"Governance: {config.governance}")
    logger.info(f"Min update interval: {config.min_update_interval_seconds}s")

    if args.dry_run:
        logger.info("Dry run - configuration valid")
        return 0

    if args.command == "replay":
        return run_replay(config, args.input, args.market)

    if args.command == "serve":
        if config.api_port is None:
            logger.error("API disabled (api_port is null). Set --port or configure it.")
            return 1
        return asyncio.run(serve_async(config))

    logger.error("No command given. Use 'replay' or 'serve'.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
