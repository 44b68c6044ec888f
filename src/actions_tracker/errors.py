"""Custom exception types for the GitHub Actions tracker."""


class TrackerError(Exception):
    """Base exception for all recoverable tracker errors."""


class ConfigurationError(TrackerError):
    """Raised when runtime configuration values are missing or invalid."""


class InvalidRequestError(TrackerError):
    """Raised when a request is missing required input or uses unsupported values."""


class UpstreamUnavailableError(TrackerError):
    """Raised when a GitHub API request fails or returns an unexpected response."""


class NotFoundError(TrackerError):
    """Raised when a requested resource exists neither in the cache nor upstream."""


class ParseError(TrackerError):
    """Raised when an upstream payload does not have the expected shape."""
