"""Main entry point for the replay sync command line tool.

This module provides the application entry point with:
- Command-line argument parsing
- Application initialization and dependency injection
- Mapping of errors to exit codes
"""

import argparse
import asyncio
import sys
from pathlib import Path

import httpx
import structlog

from . import __version__
from .errors import AppError, create_user_message
from .models import AppConfig, SyncReport
from .services.config import DEFAULT_CONFIG_PATH, ConfigurationService
from .services.download_manager import DownloadManagerService
from .services.filesystem import FileSystemService
from .services.http_client import HttpClientService
from .services.logging import setup_logging
from .services.pruner import PrunerService
from .services.reconciler import ReconcilerService
from .services.stream_fetcher import StreamFetcherService
from .services.sync import SyncService


log = structlog.stdlib.get_logger()


class ApplicationContext:
    """Container for application services and state.

    This class manages the lifecycle of all application services and wires
    them into the sync service.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the application context.

        Args:
            config_path: Path to configuration file
            transport: Optional HTTP transport, used by tests
        """
        self._config_path: Path | None = config_path
        self._transport = transport

        # Services (initialized lazily)
        self._config_service: ConfigurationService | None = None
        self._http_client: HttpClientService | None = None
        self._filesystem: FileSystemService | None = None
        self._sync_service: SyncService | None = None

        self._config: AppConfig | None = None

    @property
    def config_service(self) -> ConfigurationService:
        """Get the configuration service (lazy initialization)."""
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """Get the current application configuration."""
        if self._config is None:
            self._config = self.config_service.load_config()
        return self._config

    @property
    def http_client(self) -> HttpClientService:
        """Get the HTTP client service (lazy initialization)."""
        if self._http_client is None:
            self._http_client = HttpClientService.from_config(self.config, transport=self._transport)
        return self._http_client

    @property
    def filesystem(self) -> FileSystemService:
        """Get the file system service (lazy initialization)."""
        if self._filesystem is None:
            self._filesystem = FileSystemService()
        return self._filesystem

    @property
    def sync_service(self) -> SyncService:
        """Get the sync service with all pipeline stages wired in."""
        if self._sync_service is None:
            self._sync_service = SyncService(
                stream_fetcher=StreamFetcherService(
                    http_client=self.http_client,
                    metadata_base_url=self.config.metadata_base_url,
                ),
                reconciler=ReconcilerService(self.filesystem),
                download_manager=DownloadManagerService(
                    http_client=self.http_client,
                    filesystem=self.filesystem,
                    content_base_url=self.config.content_base_url,
                    rate_limit_delay=self.config.rate_limit_delay,
                ),
                pruner=PrunerService(self.filesystem),
            )
        return self._sync_service

    async def cleanup(self) -> None:
        """Close connections."""
        if self._http_client is not None:
            await self._http_client.close()


class ParsedArgs:
    """Type-safe container for parsed command-line arguments."""

    def __init__(
        self,
        streams: list[str],
        directory: Path,
        remove: bool,
        verbose: int,
        config: Path | None,
        log_dir: Path | None,
    ) -> None:
        self.streams: list[str] = streams
        self.directory: Path = directory
        self.remove: bool = remove
        self.verbose: int = verbose
        self.config: Path | None = config
        self.log_dir: Path | None = log_dir

    def __repr__(self) -> str:
        return (
            f"ParsedArgs(streams={self.streams!r}, directory={self.directory!r}, "
            f"remove={self.remove!r}, verbose={self.verbose!r}, config={self.config!r}, "
            f"log_dir={self.log_dir!r})"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="replay-sync",
        description="Download the replays of one or more streams into a directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  replay-sync 40l_global                 Sync into the current directory
  replay-sync -C replays -r 40l_global   Sync into ./replays and remove stale replays
  replay-sync -vv blitz_global           Sync with request tracing
        """
    )

    _ = parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    _ = parser.add_argument(
        "streams",
        nargs="+",
        metavar="STREAM",
        help="Name of a stream to sync"
    )

    _ = parser.add_argument(
        "-C", "--directory",
        type=Path,
        default=Path("."),
        help="Directory to sync (default: current directory)"
    )

    _ = parser.add_argument(
        "-r", "--remove",
        action="store_true",
        help="Remove replays that are no longer in any stream"
    )

    _ = parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v debug, -vv trace)"
    )

    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})"
    )

    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: console only)"
    )

    return parser


def parse_arguments(argv: list[str] | None = None) -> ParsedArgs:
    """Parse command-line arguments.

    Returns:
        Parsed arguments container
    """
    ns = build_parser().parse_args(argv)

    return ParsedArgs(
        streams=list(ns.streams),
        directory=ns.directory,
        remove=bool(ns.remove),
        verbose=int(ns.verbose),
        config=ns.config,
        log_dir=ns.log_dir,
    )


async def run_sync(context: ApplicationContext, args: ParsedArgs) -> SyncReport:
    """Run one sync and release the HTTP connections afterwards."""
    try:
        return await context.sync_service.run(args.streams, args.directory, remove=args.remove)
    finally:
        await context.cleanup()


def run(argv: list[str] | None = None, transport: httpx.AsyncBaseTransport | None = None) -> int:
    """Run the command line tool.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = parse_arguments(argv)

    _ = setup_logging(verbosity=args.verbose, log_dir=args.log_dir)
    log.debug("Parsed arguments", args=repr(args))

    context = ApplicationContext(config_path=args.config, transport=transport)

    try:
        asyncio.run(run_sync(context, args))
        return 0

    except AppError as e:
        log.error(
            "Sync failed",
            error=e.message,
            category=e.category.value,
            technical_details=e.technical_details,
        )
        print(create_user_message(e.to_user_friendly()), file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        log.info("Sync interrupted by user")
        return 130  # Standard exit code for SIGINT

    except Exception as e:
        log.error("Unhandled exception", error=str(e), exc_info=True)
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    """Main entry point for the application."""
    sys.exit(run())


if __name__ == "__main__":
    main()
