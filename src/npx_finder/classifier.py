"""
Package Classifier

Decides which versions expose executables and maps registry fields into
NPMPackage records.
"""

from typing import Any

from .config import DEFAULT_WEB_URL
from .models import NPMPackage, PackageLinks, VersionRecord

VCS_PREFIX = "git+"
ARCHIVE_SUFFIX = ".git"


def is_executable_package(record: VersionRecord) -> bool:
    """True when the version declares at least one bin command."""
    return bool(record.bin)


def clean_repository_url(url: str | None) -> str | None:
    """Strip one leading 'git+' and one trailing '.git' from a repository URL."""
    if not url:
        return url
    if url.startswith(VCS_PREFIX):
        url = url[len(VCS_PREFIX):]
    if url.endswith(ARCHIVE_SUFFIX):
        url = url[:-len(ARCHIVE_SUFFIX)]
    return url


def normalize_package(name: str, record: VersionRecord, document: dict[str, Any],
                      web_url: str = DEFAULT_WEB_URL, version: str | None = None) -> NPMPackage:
    """
    Build the output record for one qualifying package.

    Args:
        name: Full package name, scope included
        record: Manifest of the latest version
        document: Raw metadata document, kept as ``original``
        web_url: Registry website base URL used for the npm link
        version: Latest dist-tag; falls back to the manifest's version
    """
    return NPMPackage(
        name=name,
        description=record.description,
        version=version or record.version or "",
        bin=dict(record.bin) if record.bin is not None else None,
        dependencies=dict(record.dependencies) if record.dependencies is not None else None,
        scripts=dict(record.scripts) if record.scripts is not None else None,
        keywords=list(record.keywords) if record.keywords is not None else None,
        links=PackageLinks(
            npm=f"{web_url.rstrip('/')}/package/{name}",
            repository=clean_repository_url(record.repository_url),
            homepage=record.homepage,
        ),
        original=document,
    )
