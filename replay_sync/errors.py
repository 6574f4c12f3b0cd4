"""Error types for the replay sync application.

This module provides:
- One exception class per failure in the sync pipeline
- User-friendly error messages with suggested actions
- Rendering of errors for the command line

Every error here is fatal to a sync run. The only recoverable condition,
HTTP 429 from the content service, never surfaces as an exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    NETWORK = "network"
    FILE_SYSTEM = "file_system"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    DOWNLOAD = "download"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None


def _describe(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


def _join_details(*parts: str | None) -> str | None:
    details = [part for part in parts if part]
    return "\n".join(details) if details else None


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
        )


class StreamFetchError(AppError):
    """The metadata service could not be reached or answered with an error."""

    def __init__(
        self,
        stream: str,
        cause: Exception | None = None,
        status_code: int | None = None,
    ) -> None:
        if status_code == 404:
            suggested_actions = [
                "Check the stream name for typos",
                "The stream may no longer exist",
            ]
        elif status_code is not None and status_code >= 500:
            suggested_actions = [
                "The metadata service is experiencing issues",
                "Try again later",
            ]
        else:
            suggested_actions = [
                "Check your internet connection",
                "Verify the metadata service URL in the configuration",
                "Try again in a few moments",
            ]

        super().__init__(
            message=f"Failed to fetch stream {stream}",
            category=ErrorCategory.NETWORK,
            suggested_actions=suggested_actions,
            technical_details=_join_details(
                f"Stream: {stream}",
                f"Status: {status_code}" if status_code is not None else None,
                _describe(cause) if cause else None,
            ),
        )
        self.stream = stream
        self.cause = cause
        self.status_code = status_code


class StreamDataMissingError(AppError):
    """The metadata service answered successfully but without a data payload."""

    def __init__(self, stream: str) -> None:
        super().__init__(
            message=f"Missing stream data for {stream}",
            category=ErrorCategory.VALIDATION,
            suggested_actions=[
                "Check the stream name for typos",
                "The metadata service may be returning an error page",
            ],
            technical_details=f"Stream: {stream}",
        )
        self.stream = stream


class TimestampParseError(AppError):
    """A record timestamp is not a valid RFC 3339 timestamp."""

    def __init__(self, value: Any, cause: Exception | None = None) -> None:
        value_str = str(value)[:100]
        super().__init__(
            message=f"Invalid record timestamp: {value_str!r}",
            category=ErrorCategory.VALIDATION,
            suggested_actions=[
                "The metadata service returned an unexpected timestamp format",
                "Try again later or report the stream",
            ],
            technical_details=_join_details(
                f"Value: {value_str}",
                _describe(cause) if cause else None,
            ),
        )
        self.value = value
        self.cause = cause


class InvalidRecordError(AppError):
    """A stream record is missing a required field or has one of the wrong type."""

    def __init__(self, message: str, field: str, value: Any = None) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            suggested_actions=["The metadata service returned an unexpected record format"],
            technical_details=_join_details(f"Field: {field}", f"Value: {str(value)[:100]}"),
        )
        self.field = field
        self.value = value


def _filesystem_actions(cause: Exception | None) -> list[str]:
    """Get suggested actions based on the underlying OS error."""
    if isinstance(cause, PermissionError):
        return [
            "Check file/directory permissions",
            "Choose a different directory",
        ]
    if isinstance(cause, OSError):
        error_str = str(cause).lower()
        if "no space" in error_str or "disk full" in error_str:
            return [
                "Free up disk space",
                "Choose a different directory",
            ]
        if "read-only" in error_str:
            return [
                "The file system is read-only",
                "Choose a different directory",
            ]
    return [
        "Check the directory path and permissions",
        "Ensure sufficient disk space",
    ]


class FileSystemError(AppError):
    """Base class for failures touching the sync directory."""

    def __init__(self, message: str, path: str, cause: Exception | None = None) -> None:
        super().__init__(
            message=message,
            category=ErrorCategory.FILE_SYSTEM,
            suggested_actions=_filesystem_actions(cause),
            technical_details=_join_details(f"Path: {path}", _describe(cause) if cause else None),
        )
        self.path = path
        self.cause = cause


class DirectoryCreateError(FileSystemError):
    """The sync directory does not exist and could not be created."""

    def __init__(self, path: str, cause: Exception | None = None) -> None:
        super().__init__(f"Failed to create directory {path}", path=path, cause=cause)


class DownloadWriteError(FileSystemError):
    """A downloaded replay could not be written to disk."""

    def __init__(self, path: str, cause: Exception | None = None) -> None:
        super().__init__(f"Failed to write replay {path}", path=path, cause=cause)


class PruneError(FileSystemError):
    """A stale replay file could not be deleted."""

    def __init__(self, path: str, cause: Exception | None = None) -> None:
        super().__init__(f"Failed to remove replay {path}", path=path, cause=cause)


class DownloadHttpError(AppError):
    """The content service answered with a non-2xx status other than 429."""

    def __init__(self, replay_id: str, status_code: int, url: str | None = None) -> None:
        if status_code == 404:
            suggested_actions = [
                "The replay may not be available on the content service yet",
                "Run the sync again later",
            ]
        elif status_code >= 500:
            suggested_actions = [
                "The content service is experiencing issues",
                "Run the sync again later",
            ]
        else:
            suggested_actions = ["Run the sync again later"]

        super().__init__(
            message=f"Download of replay {replay_id} failed with HTTP {status_code}",
            category=ErrorCategory.DOWNLOAD,
            suggested_actions=suggested_actions,
            technical_details=_join_details(
                f"Status: {status_code}",
                f"URL: {url}" if url else None,
            ),
        )
        self.replay_id = replay_id
        self.status_code = status_code
        self.url = url


class DownloadTransportError(AppError):
    """The content service could not be reached."""

    def __init__(self, replay_id: str, cause: Exception | None = None, url: str | None = None) -> None:
        super().__init__(
            message=f"Download of replay {replay_id} failed",
            category=ErrorCategory.NETWORK,
            suggested_actions=[
                "Check your internet connection",
                "Verify the content service URL in the configuration",
                "Run the sync again; downloaded replays are kept",
            ],
            technical_details=_join_details(
                f"URL: {url}" if url else None,
                _describe(cause) if cause else None,
            ),
        )
        self.replay_id = replay_id
        self.cause = cause
        self.url = url


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        suggested_actions = [
            "Check the configuration file",
            "Remove the file to fall back to default values",
        ]
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            suggested_actions=suggested_actions,
            technical_details=_join_details(
                f"Setting: {setting}" if setting else None,
                f"Current: {current_value}" if current_value is not None else None,
            ),
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


def create_user_message(
    error: UserFriendlyError,
    include_suggestions: bool = True,
) -> str:
    """Create a formatted user message from an error.

    Args:
        error: The user-friendly error
        include_suggestions: Whether to include suggested actions

    Returns:
        Formatted message string
    """
    parts = [error.message]

    if include_suggestions and error.suggested_actions:
        parts.append("\nSuggested actions:")
        for action in error.suggested_actions[:3]:  # Limit to 3 suggestions
            parts.append(f"  • {action}")

    return "\n".join(parts)
