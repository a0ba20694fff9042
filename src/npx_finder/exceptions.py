"""
NPX Finder Errors

Search-phase errors abort a discovery. Per-package errors are collected
as PackageResolutionError and never raised out of a discovery.
"""


class NpxFinderError(Exception):
    """Base class for all finder errors."""


class InvalidScopeError(NpxFinderError, ValueError):
    """Raised when a scope does not look like '@name'."""

    def __init__(self, scope: str):
        self.scope = scope
        super().__init__(f'Scope must start with "@" followed by a name, got {scope!r}')


class FetchError(NpxFinderError):
    """A registry request failed on its last allowed attempt."""

    def __init__(self, url: str, message: str, attempts: int = 1):
        self.url = url
        self.attempts = attempts
        super().__init__(message)


class TransportError(FetchError):
    """Network failure, non-2xx status or undecodable body."""

    def __init__(self, url: str, message: str, attempts: int = 1, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(url, message, attempts)


class RequestTimeoutError(FetchError):
    """An attempt ran longer than the configured timeout."""

    def __init__(self, url: str, timeout_ms: int, attempts: int = 1):
        self.timeout_ms = timeout_ms
        super().__init__(url, f"Request timed out after {timeout_ms}ms: {url}", attempts)


class InvalidResponseFormatError(NpxFinderError):
    """Decoded JSON is missing fields the finder depends on."""

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(message)


class PackageResolutionError(NpxFinderError):
    """A single package could not be resolved; the discovery carries on."""

    def __init__(self, package_name: str, cause: Exception):
        self.package_name = package_name
        self.cause = cause
        super().__init__(f"Failed to resolve {package_name}: {cause}")
