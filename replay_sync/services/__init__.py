"""Service layer for the sync pipeline and its external integrations."""

from .config import ConfigurationService, ValidationResult
from .download_manager import BackoffPolicy, DownloadManagerService
from .filesystem import FileSystemService
from .http_client import HttpClientService
from .pruner import PrunerService
from .reconciler import ReconcilerService
from .stream_fetcher import StreamFetcherService, deduplicate
from .sync import SyncService

__all__ = [
    "BackoffPolicy",
    "ConfigurationService",
    "DownloadManagerService",
    "FileSystemService",
    "HttpClientService",
    "PrunerService",
    "ReconcilerService",
    "StreamFetcherService",
    "SyncService",
    "ValidationResult",
    "deduplicate",
]
