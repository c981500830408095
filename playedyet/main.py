"""Main entry point for PlayedYet.

This module provides the application entry point with:
- Command-line argument parsing
- Application initialization and dependency injection
- Graceful shutdown handling
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Any

import structlog

from playedyet.models import AppConfig
from playedyet.services.backup import BackupService
from playedyet.services.blob_store import BlobStore
from playedyet.services.config import CONFIG_FILE, ConfigurationService
from playedyet.services.game_store import GameStore
from playedyet.services.http_client import HttpClientService
from playedyet.services.images import ImageAcquisitionService
from playedyet.services.logging import setup_logging
from playedyet.services.metadata import RawgMetadataFetcher

log = structlog.stdlib.get_logger()

VERSION = "0.1.0"
DEFAULT_DATA_DIR = Path.home() / ".config" / "playedyet"


class ApplicationContext:
    """Container for application services.

    Services are created on first use and share one data directory; the
    HTTP client is closed by ``cleanup``.
    """

    def __init__(self, data_dir: Path | None = None) -> None:
        """Initialize the application context.

        Args:
            data_dir: Application data directory (library, covers, config)
        """
        self.data_dir: Path = (data_dir or DEFAULT_DATA_DIR).expanduser()

        # Services (initialized lazily)
        self._config_service: ConfigurationService | None = None
        self._config: AppConfig | None = None
        self._blob_store: BlobStore | None = None
        self._http_client: HttpClientService | None = None
        self._metadata_fetcher: RawgMetadataFetcher | None = None
        self._image_service: ImageAcquisitionService | None = None
        self._store: GameStore | None = None
        self._backup_service: BackupService | None = None

        self._shutdown_requested: bool = False
        self._app: Any = None

    @property
    def config_service(self) -> ConfigurationService:
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self.data_dir / CONFIG_FILE)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """Configuration as loaded at startup."""
        if self._config is None:
            self._config = self.config_service.load_config()
        return self._config

    @property
    def blob_store(self) -> BlobStore:
        if self._blob_store is None:
            self._blob_store = BlobStore(self.data_dir)
        return self._blob_store

    @property
    def http_client(self) -> HttpClientService:
        if self._http_client is None:
            self._http_client = HttpClientService(timeout=self.config.request_timeout)
        return self._http_client

    @property
    def metadata_fetcher(self) -> RawgMetadataFetcher:
        if self._metadata_fetcher is None:
            self._metadata_fetcher = RawgMetadataFetcher(
                http_client=self.http_client,
                api_key_provider=self.config_service.get_api_key,
            )
        return self._metadata_fetcher

    @property
    def image_service(self) -> ImageAcquisitionService:
        if self._image_service is None:
            self._image_service = ImageAcquisitionService(self.blob_store, self.metadata_fetcher)
        return self._image_service

    @property
    def store(self) -> GameStore:
        if self._store is None:
            self._store = GameStore(self.blob_store, self.image_service)
        return self._store

    @property
    def backup_service(self) -> BackupService:
        if self._backup_service is None:
            self._backup_service = BackupService(self.store)
        return self._backup_service

    def attach_app(self, app: Any) -> None:
        """Remember the running TUI so a shutdown request can close it."""
        self._app = app

    def request_shutdown(self) -> None:
        self._shutdown_requested = True
        log.info("Shutdown requested")
        if self._app is not None:
            self._app.exit()

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    async def cleanup(self) -> None:
        """Close network connections."""
        log.info("Cleaning up application resources")
        if self._http_client is not None:
            await self._http_client.close()
        log.info("Application cleanup complete")


class ParsedArgs:
    """Type-safe container for parsed command-line arguments."""

    def __init__(
        self,
        data_dir: Path | None,
        log_level: str | None,
        log_dir: Path | None,
        no_tui: bool,
    ) -> None:
        self.data_dir: Path | None = data_dir
        self.log_level: str | None = log_level
        self.log_dir: Path | None = log_dir
        self.no_tui: bool = no_tui


def parse_arguments(argv: list[str] | None = None) -> ParsedArgs:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="playedyet",
        description="Track the games you have played and the ones still waiting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  playedyet                           Start the TUI application
  playedyet --log-level DEBUG         Start with debug logging
  playedyet --data-dir ./my-library   Keep the library somewhere else
  playedyet --no-tui                  Print a library summary and exit
        """,
    )

    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    _ = parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Directory holding the library, covers and config (default: ~/.config/playedyet)",
    )

    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (default: from config, INFO otherwise)",
    )

    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: <data-dir>/logs when running the TUI)",
    )

    _ = parser.add_argument(
        "--no-tui",
        action="store_true",
        help="Print a summary of the library instead of starting the TUI",
    )

    ns = parser.parse_args(argv)

    return ParsedArgs(
        data_dir=ns.data_dir,
        log_level=ns.log_level,
        log_dir=ns.log_dir,
        no_tui=bool(ns.no_tui),
    )


def setup_signal_handlers(context: ApplicationContext) -> None:
    """Set up signal handlers for graceful shutdown."""

    def signal_handler(signum: int, frame: object) -> None:
        _ = frame
        log.info("Received signal", signal=signal.Signals(signum).name)
        context.request_shutdown()

    _ = signal.signal(signal.SIGINT, signal_handler)
    _ = signal.signal(signal.SIGTERM, signal_handler)

    log.debug("Signal handlers registered")


def format_summary(context: ApplicationContext) -> str:
    """One-line library summary for non-TUI mode."""
    store = context.store
    return (
        f"{len(store.games)} played, {len(store.to_play_games)} to play, "
        f"{store.get_total_hours():.1f} hours"
    )


async def run_summary(context: ApplicationContext) -> int:
    """Load the library and print a summary."""
    try:
        await context.store.initialize()
        print(f"PlayedYet {VERSION}")
        print(f"Data directory: {context.data_dir}")
        print(f"Library: {format_summary(context)}")
        print(f"Top genre: {context.store.get_top_genre()}")
        return 0
    finally:
        await context.cleanup()


async def run_tui(context: ApplicationContext) -> int:
    """Run the TUI application.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    from playedyet.ui.app import PlayedYetApp

    log.info("Starting TUI application")

    try:
        app = PlayedYetApp(
            store=context.store,
            config_service=context.config_service,
            backup_service=context.backup_service,
            metadata_fetcher=context.metadata_fetcher,
        )
        context.attach_app(app)

        await app.run_async()

        log.info("TUI application exited normally")
        return 0

    except Exception as e:
        log.error("TUI application error", error=str(e), exc_info=True)
        return 1
    finally:
        await context.cleanup()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the application."""
    args = parse_arguments(argv)
    context = ApplicationContext(data_dir=args.data_dir)

    log_dir = args.log_dir
    if log_dir is None and not args.no_tui:
        log_dir = context.data_dir / "logs"

    logging_service = setup_logging(
        log_level=args.log_level or "INFO",
        log_dir=log_dir,
        tui_mode=not args.no_tui,
    )

    # The config file sets the level when the command line does not
    if args.log_level is None:
        logging_service.set_level(context.config.log_level)

    log.info(
        "Starting PlayedYet",
        version=VERSION,
        data_dir=str(context.data_dir),
        log_level=args.log_level or context.config.log_level,
    )

    setup_signal_handlers(context)

    try:
        if args.no_tui:
            log.info("Running in non-TUI mode")
            exit_code = asyncio.run(run_summary(context))
        else:
            exit_code = asyncio.run(run_tui(context))

    except KeyboardInterrupt:
        log.info("Application interrupted by user")
        exit_code = 130

    except Exception as e:
        log.error("Unhandled exception", error=str(e), exc_info=True)
        print(f"Fatal error: {e}", file=sys.stderr)
        exit_code = 1

    log.info("Application exiting", exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
