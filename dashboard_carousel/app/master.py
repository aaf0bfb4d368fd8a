import argparse
import asyncio
import signal
from pathlib import Path
from typing import Optional

from dashboard_carousel.core import CarouselSystem, get_shutdown_coordinator, load_settings
from dashboard_carousel.core.crash_recorder import CrashRecorder
from dashboard_carousel.core.logging_config import LoggingPlan, setup_logging, shutdown_logging
from dashboard_carousel.core.logging_utils import get_module_logger
from dashboard_carousel.core.paths import ensure_directories, resolve_path
from dashboard_carousel.core.settings import CarouselSettings


logger = get_module_logger(__name__)

EXIT_OK = 0
EXIT_SHUTDOWN_TIMEOUT = 1


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments. Unset flags keep config/env values."""
    parser = argparse.ArgumentParser(
        description="Dashboard carousel - periodic dashboard screenshots behind a small HTTP API"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a key = value config file (default: config.txt in the project root)"
    )

    parser.add_argument("--host", type=str, default=None, help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to (default: 3000)")

    parser.add_argument(
        "--log-level",
        choices=['debug', 'info', 'warning', 'error', 'critical'],
        default=None,
        help="Logging level (default: info)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Rotating log file (default: logs/carousel.log)"
    )

    parser.add_argument(
        "--console",
        dest="console_output",
        action="store_true",
        default=True,
        help="Also log to console"
    )

    parser.add_argument(
        "--no-console",
        dest="console_output",
        action="store_false",
        help="Log to file only"
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Capture every dashboard once and exit"
    )

    return parser.parse_args(argv)


def _install_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    coordinator = get_shutdown_coordinator()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, coordinator.request_shutdown, sig.name)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler


async def serve(system: CarouselSystem) -> int:
    """Run until SIGINT/SIGTERM, then shut down within the configured budget."""
    coordinator = get_shutdown_coordinator()
    system.register_cleanup(coordinator)

    await system.start()

    source = await coordinator.wait_for_request()
    logger.info("%s received, shutting down gracefully...", source)

    budget = system.settings.shutdown_timeout_s
    try:
        await asyncio.wait_for(coordinator.initiate_shutdown(source), timeout=budget)
    except asyncio.TimeoutError:
        logger.error("Graceful shutdown exceeded %.0fs, forcing exit", budget)
        return EXIT_SHUTDOWN_TIMEOUT
    return EXIT_OK


async def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the carousel.

    Startup: args -> settings (defaults <- config file <- env <- CLI) ->
    logging -> crash recorder -> placeholders -> API server + scheduler.

    Exit codes: 0 after a graceful shutdown, 1 when the shutdown budget
    ran out.
    """
    args = parse_args(argv)

    settings = await load_settings(args.config)
    settings = settings.with_overrides(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        log_file=resolve_path(args.log_file) if args.log_file else None,
    )

    ensure_directories(settings.shots_dir)
    plan = setup_logging(LoggingPlan.from_settings(settings, console=args.console_output))
    try:
        return await _run(args, settings, plan)
    finally:
        shutdown_logging()


async def _run(args: argparse.Namespace, settings: CarouselSettings, plan: LoggingPlan) -> int:
    loop = asyncio.get_running_loop()
    CrashRecorder(plan.crash_dir).install(loop)

    logger.info("=" * 60)
    logger.info("Dashboard Carousel Starting")
    logger.info("=" * 60)
    logger.info("Shots directory: %s", settings.shots_dir)
    logger.info("State file: %s", settings.state_file)
    logger.info(
        "Schedule: %s every %.0f min, batch size %d, %s sessions, %s profile",
        settings.schedule_mode.value,
        settings.capture_every_min,
        settings.batch_size,
        settings.session_policy.value,
        settings.resource_profile.value,
    )

    system = CarouselSystem(settings)

    if args.once:
        snapshot = await system.run_once()
        logger.info(
            "Single pass done: %d successful, %d failed, %d total",
            snapshot.successful, snapshot.failed, snapshot.total,
        )
        return EXIT_OK

    _install_signal_handlers(loop)
    exit_code = await serve(system)

    logger.info("=" * 60)
    logger.info("Dashboard Carousel Stopped")
    logger.info("=" * 60)
    return exit_code
