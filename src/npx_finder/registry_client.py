"""
NPM Registry Client

This module builds the registry endpoint URLs and decodes their JSON
responses. Retries are delegated to the resilient fetcher.
"""

from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .config import FinderOptions
from .exceptions import InvalidResponseFormatError
from .fetcher import JSON_HEADERS, fetch_with_retry
from .models import PackageDocument, SearchResponse, VersionRecord

# Characters encodeURIComponent leaves alone besides alphanumerics.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def encode_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


class NPMRegistryClient:
    """Client for the registry's search and package metadata endpoints."""

    def __init__(self, options: FinderOptions | None = None, client: httpx.AsyncClient | None = None):
        """
        Initialize the registry client.

        Args:
            options: Timeout, retry and endpoint settings
            client: HTTP client to use instead of an owned one
        """
        self.options = options or FinderOptions()
        self.session = client
        self._owns_session = client is None

    @property
    def registry_url(self) -> str:
        return self.options.registry_url

    def build_search_url(self, scope: str) -> str:
        """Search-by-text URL for a scope."""
        return f"{self.registry_url}/-/v1/search?text={encode_component(scope)}"

    def build_package_url(self, package_name: str) -> str:
        """Metadata document URL; the scope slash is encoded too."""
        return f"{self.registry_url}/{encode_component(package_name)}"

    async def _get_session(self) -> httpx.AsyncClient:
        """Get or create HTTP session."""
        if self.session is None:
            self.session = httpx.AsyncClient(headers=JSON_HEADERS, follow_redirects=True)
        return self.session

    async def close(self):
        """Close the HTTP session if this client created it."""
        if self.session and self._owns_session:
            await self.session.aclose()
            self.session = None

    async def __aenter__(self) -> "NPMRegistryClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def fetch_json(self, url: str) -> Any:
        session = await self._get_session()
        return await fetch_with_retry(session, url, self.options)

    async def search(self, scope: str) -> SearchResponse:
        """Run a text search for the scope."""
        url = self.build_search_url(scope)
        data = await self.fetch_json(url)
        return decode_search_response(data, url)

    async def get_package_document(self, package_name: str) -> tuple[PackageDocument, dict[str, Any]]:
        """
        Fetch a package metadata document.

        Returns:
            The validated document and the raw decoded JSON
        """
        url = self.build_package_url(package_name)
        data = await self.fetch_json(url)
        return decode_package_document(data, url), data


def decode_search_response(data: Any, url: str | None = None) -> SearchResponse:
    if not isinstance(data, dict) or not isinstance(data.get("objects"), list):
        raise InvalidResponseFormatError("Invalid search response format", url=url)

    try:
        return SearchResponse.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseFormatError(f"Invalid search response format: {e}", url=url) from e


def decode_package_document(data: Any, url: str | None = None) -> PackageDocument:
    if not isinstance(data, dict):
        raise InvalidResponseFormatError("Package document is not a JSON object", url=url)

    try:
        document = PackageDocument.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseFormatError(f"Invalid package info format: {e}", url=url) from e

    if not document.latest or document.versions is None:
        raise InvalidResponseFormatError("Package document lacks dist-tags.latest or versions", url=url)
    return document


def decode_version_record(document: PackageDocument, url: str | None = None) -> VersionRecord:
    """Validate the manifest the latest dist-tag points at."""
    latest = document.latest
    raw = (document.versions or {}).get(latest)
    if raw is None:
        raise InvalidResponseFormatError(f"Latest version {latest} is missing from versions", url=url)

    try:
        return VersionRecord.model_validate(raw)
    except ValidationError as e:
        raise InvalidResponseFormatError(f"Invalid version record for {latest}: {e}", url=url) from e
