"""
UserFeed Input Validators
=========================

URL and settings validation utilities with sanitization and security checks.
"""

import re
from urllib.parse import urlparse, urlunparse
from typing import Optional

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and sanitization utilities."""

    ALLOWED_SCHEMES = {"http", "https"}

    # Content types a feed endpoint may legitimately answer with
    FEED_CONTENT_TYPES = (
        "application/rss+xml",
        "application/xml",
        "text/xml",
        "application/atom+xml",
    )

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate and normalize an owner-supplied RSS feed URL.

        Args:
            url: URL to validate

        Returns:
            Normalized URL (trimmed, lower-cased, fragment removed)

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        url = url.strip().lower()
        parsed = urlparse(url)

        if parsed.scheme not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if cls._has_suspicious_patterns(url):
            raise ValidationError(
                "URL contains suspicious patterns",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        return urlunparse(parsed._replace(path=parsed.path or "/", fragment=""))

    @classmethod
    def _has_suspicious_patterns(cls, url: str) -> bool:
        suspicious_patterns = [
            r"javascript:",
            r"data:",
            r"file:",
            r"localhost",
            r"127\.0\.0\.1",
            r"10\.\d+\.\d+\.\d+",
            r"192\.168\.\d+\.\d+",
        ]
        return any(re.search(pattern, url) for pattern in suspicious_patterns)

    @classmethod
    def is_feed_content_type(cls, content_type: Optional[str]) -> bool:
        """Check whether an HTTP Content-Type header names an XML feed."""
        if not content_type:
            return False
        media_type = content_type.split(";", 1)[0].strip().lower()
        return media_type in cls.FEED_CONTENT_TYPES


def is_valid_url(url: Optional[str]) -> bool:
    """Syntax-only URL check used for feed-provided media links.

    Requires an http(s) scheme and a host; no network access.
    """
    if not url or not isinstance(url, str):
        return False

    url = url.strip()
    if any(ch.isspace() for ch in url):
        return False

    parsed = urlparse(url)
    return parsed.scheme.lower() in URLValidator.ALLOWED_SCHEMES and bool(parsed.hostname)


def validate_url(url: str) -> bool:
    """Quick validation function for feed URLs."""
    try:
        URLValidator.validate_feed_url(url)
        return True
    except ValidationError:
        return False


def validate_interval_hours(value) -> int:
    """Coerce an interval (hours) submitted through settings to a positive int."""
    try:
        hours = abs(int(value))
    except (TypeError, ValueError):
        raise ValidationError(
            f"Interval must be a whole number of hours, got {value!r}",
            error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
            field_name="interval",
        )

    if hours < 1:
        raise ValidationError(
            "Interval must be at least one hour",
            error_code=ErrorCode.VALIDATION_OUT_OF_RANGE,
            field_name="interval",
        )
    return hours
