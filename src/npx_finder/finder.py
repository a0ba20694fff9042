"""
NPX Finder

This module discovers the executable packages published under a scope.
Discovery runs in two phases: one search request, then one metadata
request per scoped package name, all issued concurrently. Search-phase
failures abort the discovery; package-phase failures are reported and
the package is left out.
"""

import asyncio

import httpx

from .classifier import is_executable_package, normalize_package
from .config import FinderOptions, finder_logger
from .exceptions import InvalidScopeError, NpxFinderError, PackageResolutionError
from .models import DiscoveryReport, NPMPackage, SearchResponse
from .registry_client import NPMRegistryClient, decode_version_record

SCOPE_MARKER = "@"


def validate_scope(scope: str) -> str:
    """Return the scope unchanged or raise InvalidScopeError."""
    if not isinstance(scope, str) or not scope.startswith(SCOPE_MARKER) or len(scope) <= len(SCOPE_MARKER):
        raise InvalidScopeError(scope)
    return scope


def scope_prefix(scope: str) -> str:
    """Name prefix that places a package inside the scope."""
    if "/" in scope:
        return scope
    return f"{scope}/"


def select_scope_packages(search_result: SearchResponse, scope: str) -> list[str]:
    """Unique names in search order that belong to the scope."""
    prefix = scope_prefix(scope)
    names = [name for name in search_result.names if name.startswith(prefix)]
    return list(dict.fromkeys(names))


class NpxFinder:
    """Finds npx-compatible packages within a registry scope."""

    def __init__(self, options: FinderOptions | None = None, client: httpx.AsyncClient | None = None):
        self.options = options or FinderOptions()
        self.registry = NPMRegistryClient(self.options, client=client)

    async def close(self):
        await self.registry.close()

    async def __aenter__(self) -> "NpxFinder":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def discover(self, scope: str) -> list[NPMPackage]:
        """
        Find all executable packages in a scope.

        Args:
            scope: Scope to search in, e.g. '@your-scope'

        Returns:
            Packages whose latest version declares at least one bin command

        Raises:
            InvalidScopeError: If the scope does not start with '@'
            FetchError: If the search request failed on every attempt
            InvalidResponseFormatError: If the search response is malformed
        """
        report = await self.discover_with_report(scope)
        return report.packages

    async def discover_with_report(self, scope: str) -> DiscoveryReport:
        """Same as discover(), keeping per-package diagnostics."""
        validate_scope(scope)
        report = DiscoveryReport(scope=scope)

        try:
            search_result = await self.registry.search(scope)
        except NpxFinderError as e:
            finder_logger.error(f"Error searching packages in {scope}: {e}")
            raise

        report.candidates = select_scope_packages(search_result, scope)
        if not report.candidates:
            finder_logger.info(f"No packages found in scope {scope}")
            return report

        results = await asyncio.gather(
            *(self._resolve_package(name) for name in report.candidates),
            return_exceptions=True
        )

        for name, result in zip(report.candidates, results):
            if isinstance(result, PackageResolutionError):
                finder_logger.warning(f"Skipping {name}: {result.cause}")
                report.errors.append(result)
            elif isinstance(result, BaseException):
                raise result
            elif result is None:
                report.skipped.append(name)
            else:
                report.packages.append(result)

        finder_logger.info(
            f"Found {len(report.packages)} executable packages in {scope} "
            f"({len(report.candidates)} candidates, {len(report.errors)} errors)"
        )
        return report

    async def _resolve_package(self, package_name: str) -> NPMPackage | None:
        """Fetch one package and classify its latest version."""
        url = self.registry.build_package_url(package_name)
        try:
            document, raw = await self.registry.get_package_document(package_name)
            record = decode_version_record(document, url)
        except NpxFinderError as e:
            raise PackageResolutionError(package_name, e) from e

        if not is_executable_package(record):
            finder_logger.debug(f"{package_name}@{document.latest} declares no executables")
            return None

        return normalize_package(package_name, record, raw, web_url=self.options.web_url, version=document.latest)


async def npx_finder(scope: str, options: FinderOptions | None = None, **overrides) -> list[NPMPackage]:
    """
    Find all executable packages within a scope.

    Args:
        scope: Scope to search in, e.g. '@your-scope'
        options: Optional configuration; keyword overrides such as
            timeout_ms, max_retries and retry_delay_ms are applied on top

    Returns:
        List of found packages
    """
    options = options or FinderOptions()
    if overrides:
        options = FinderOptions(**{**options.model_dump(), **overrides})

    async with NpxFinder(options) as finder:
        return await finder.discover(scope)
