"""Service layer for business logic and external integrations."""

from .backup import BackupService, backup_filename, parse_backup
from .blob_store import BlobStore
from .config import ConfigurationService, ValidationResult
from .errors import (
    AppError,
    ConfigurationError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    ImportFormatError,
    NetworkError,
    StorageError,
    UserFriendlyError,
    ValidationError,
    get_error_service,
    handle_error,
)
from .game_store import GameStore, MonotonicIdGenerator, parse_hours, to_iso
from .http_client import HttpClientService
from .images import ImageAcquisitionService, cover_cache_key, cover_cache_path
from .metadata import MetadataFetcher, RawgMetadataFetcher

__all__ = [
    "AppError",
    "BackupService",
    "BlobStore",
    "ConfigurationError",
    "ConfigurationService",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "GameStore",
    "HttpClientService",
    "ImageAcquisitionService",
    "ImportFormatError",
    "MetadataFetcher",
    "MonotonicIdGenerator",
    "NetworkError",
    "RawgMetadataFetcher",
    "StorageError",
    "UserFriendlyError",
    "ValidationError",
    "ValidationResult",
    "backup_filename",
    "cover_cache_key",
    "cover_cache_path",
    "get_error_service",
    "handle_error",
    "parse_backup",
    "to_iso",
]
