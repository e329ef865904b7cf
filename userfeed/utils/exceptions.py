"""
UserFeed Custom Exceptions
==========================

Exception hierarchy for the feed importer with error codes, context
information, and user-friendly error messages.

Run-level failures (FetchError, ParseError) abort an import and drive the
scheduler's recovery path. Item-level failures (InsertError and the attachment
errors) are scoped to a single feed entry. SchedulingError is always surfaced
to the caller.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_BAD_STATUS = "F005"
    FEED_BAD_CONTENT_TYPE = "F006"

    # Content publishing errors (P001-P099)
    CONTENT_INSERT_REJECTED = "P001"
    CONTENT_INVALID = "P002"

    # Media errors (M001-M099)
    MEDIA_DOWNLOAD_FAILED = "M001"
    MEDIA_DOWNLOAD_TIMEOUT = "M002"
    MEDIA_REGISTRATION_FAILED = "M003"

    # Scheduling errors (S001-S099)
    SCHEDULER_UNAVAILABLE = "S001"
    SCHEDULER_JOB_FAILED = "S002"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"
    VALIDATION_OUT_OF_RANGE = "V003"

    # Access errors (A001-A099)
    ACCESS_DENIED = "A001"
    ACCESS_BAD_TOKEN = "A002"


class UserFeedError(Exception):
    """Base exception for all UserFeed errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize UserFeed error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _passthrough(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(UserFeedError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_passthrough(kwargs, "context", "error_code", "user_message"),
        )


class DatabaseError(UserFeedError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class FeedError(UserFeedError):
    """Feed retrieval and parsing errors.

    Both subclasses fail an entire import run.
    """

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for UserFeedError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get("user_message", f"Feed import failed: {message}"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class FetchError(FeedError):
    """Network error, timeout, or non-success HTTP status while fetching a feed."""

    pass


class ParseError(FeedError):
    """Feed document is not well-formed XML."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        super().__init__(message, feed_url=feed_url, **kwargs)


class FeedValidationError(FeedError):
    """A feed URL submitted by an owner does not point at a reachable RSS feed."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault(
            "user_message",
            "Sorry, we could not locate an RSS feed at that location. Please try again.",
        )
        kwargs.setdefault("recoverable", False)
        super().__init__(message, feed_url=feed_url, **kwargs)


class InsertError(UserFeedError):
    """The content store rejected a draft."""

    def __init__(self, message: str, title: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if title:
            context["title"] = title

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONTENT_INSERT_REJECTED),
            context=context,
            user_message=kwargs.get("user_message", "Imported item could not be saved"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class AttachmentError(UserFeedError):
    """Base class for featured image failures."""

    def __init__(self, message: str, image_url: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if image_url:
            context["image_url"] = image_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.MEDIA_DOWNLOAD_FAILED),
            context=context,
            user_message=kwargs.get("user_message", "Featured image could not be attached"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class AttachmentDownloadError(AttachmentError):
    """Downloading a featured image failed."""

    pass


class AttachmentRegistrationError(AttachmentError):
    """Storing a downloaded image as a durable attachment failed."""

    def __init__(self, message: str, image_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.MEDIA_REGISTRATION_FAILED)
        super().__init__(message, image_url=image_url, **kwargs)


class SchedulingError(UserFeedError):
    """The job registry could not be reached or refused an operation."""

    def __init__(self, message: str, owner_id: Optional[int] = None, **kwargs):
        context = kwargs.get("context", {})
        if owner_id is not None:
            context["owner_id"] = owner_id

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.SCHEDULER_UNAVAILABLE),
            context=context,
            user_message=kwargs.get(
                "user_message", "Feed imports could not be scheduled"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class ValidationError(UserFeedError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_passthrough(kwargs, "context", "error_code", "user_message", "recoverable"),
        )


class AuthorizationError(UserFeedError):
    """The acting user lacks the capability for an action."""

    def __init__(self, message: str, actor_id: Optional[int] = None, **kwargs):
        context = kwargs.get("context", {})
        if actor_id is not None:
            context["actor_id"] = actor_id

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.ACCESS_DENIED),
            context=context,
            user_message=kwargs.get(
                "user_message", "Please ask a site administrator to run this action."
            ),
            **_passthrough(kwargs, "context", "error_code", "user_message"),
        )


class CSRFError(AuthorizationError):
    """Missing or forged request token on an administrative action."""

    def __init__(self, message: str, actor_id: Optional[int] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.ACCESS_BAD_TOKEN)
        kwargs.setdefault("user_message", "The link you followed has expired.")
        super().__init__(message, actor_id=actor_id, **kwargs)


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> UserFeedError:
    """Convert generic exceptions to UserFeed exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        UserFeed exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, UserFeedError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    if isinstance(exception, (ConnectionError, TimeoutError)):
        error = UserFeedError(
            message=f"Network error during {operation}: {exception}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )
    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            message=f"Required file not found during {operation}: {exception}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Configuration file missing",
        )
    else:
        error = UserFeedError(
            message=f"Unexpected error during {operation}: {exception}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, UserFeedError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
