"""Exception types shared across tool modules and HTTP routes."""


class ICDExplorerError(Exception):
    """Base class for ICD Explorer errors."""


class ConfigurationError(ICDExplorerError):
    """A required credential (API key, endpoint) is not configured."""


class ValidationError(ICDExplorerError):
    """Caller supplied malformed input."""


class RateLimitError(ICDExplorerError):
    """Upstream API rejected the request with HTTP 429."""


class SearchError(ICDExplorerError):
    """ICD-10 search failed upstream."""
