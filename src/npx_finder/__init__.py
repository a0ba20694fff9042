"""
NPX Finder

Discovers the packages within a registry scope that ship command-line
executables and can therefore be run with npx.

Components:
- fetcher: Timeout-bounded GET with fixed-delay retries
- registry_client: Search and metadata endpoints of the registry
- finder: Two-phase discovery (search, then concurrent metadata lookups)
- classifier: Executable check and output normalization
- formatters: Plain-text renderings of found packages
- service: FastAPI wrapper
"""

from .config import FinderOptions, configure_logging
from .exceptions import (
    FetchError,
    InvalidResponseFormatError,
    InvalidScopeError,
    NpxFinderError,
    PackageResolutionError,
    RequestTimeoutError,
    TransportError,
)
from .finder import NpxFinder, npx_finder
from .models import DiscoveryReport, NPMPackage, PackageLinks

__version__ = "1.0.0"

__all__ = [
    "DiscoveryReport",
    "FetchError",
    "FinderOptions",
    "InvalidResponseFormatError",
    "InvalidScopeError",
    "NPMPackage",
    "NpxFinder",
    "NpxFinderError",
    "PackageLinks",
    "PackageResolutionError",
    "RequestTimeoutError",
    "TransportError",
    "configure_logging",
    "npx_finder"
]
