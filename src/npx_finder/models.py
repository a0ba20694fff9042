"""
NPX Finder Models

This module defines the registry response shapes (validated at the HTTP
boundary) and the normalized package records handed back to callers.

Only the fields discovery depends on are checked strictly: hit names,
dist-tags.latest, the versions mapping and bin. Descriptive manifest
fields are published in all sorts of shapes, so malformed values are
coerced instead of rejecting the package.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .exceptions import PackageResolutionError


def _text_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _text_list_or_none(value: Any) -> list[str] | None:
    """'cli' -> ['cli']; non-string entries are dropped."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return None


def _text_mapping_or_none(value: Any) -> dict[str, str] | None:
    if not isinstance(value, dict):
        return None
    return {k: v for k, v in value.items() if isinstance(v, str)}


class SearchPackage(BaseModel):
    """Package summary inside a search hit."""
    name: str
    scope: str | None = None
    version: str | None = None
    description: str | None = None
    keywords: list[str] | None = None
    date: str | None = None

    @field_validator('scope', 'version', 'description', 'date', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return _text_or_none(v)

    @field_validator('keywords', mode='before')
    @classmethod
    def coerce_keywords(cls, v):
        return _text_list_or_none(v)


class SearchObject(BaseModel):
    package: SearchPackage


class SearchResponse(BaseModel):
    """Body of GET /-/v1/search."""
    objects: list[SearchObject]
    total: int | None = None
    time: str | None = None

    @field_validator('total', mode='before')
    @classmethod
    def coerce_total(cls, v):
        return v if isinstance(v, int) else None

    @field_validator('time', mode='before')
    @classmethod
    def coerce_time(cls, v):
        return _text_or_none(v)

    @property
    def names(self) -> list[str]:
        return [obj.package.name for obj in self.objects]


class Repository(BaseModel):
    type: str | None = None
    url: str | None = None

    @field_validator('type', 'url', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return _text_or_none(v)


class VersionRecord(BaseModel):
    """Manifest of one published version."""
    name: str | None = None
    version: str | None = None
    description: str | None = None
    bin: dict[str, str] | None = None
    dependencies: dict[str, str] | None = None
    scripts: dict[str, str] | None = None
    keywords: list[str] | None = None
    repository: Repository | str | None = None
    homepage: str | None = None

    @field_validator('name', 'version', 'description', 'homepage', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return _text_or_none(v)

    @field_validator('dependencies', 'scripts', mode='before')
    @classmethod
    def coerce_mapping(cls, v):
        return _text_mapping_or_none(v)

    @field_validator('keywords', mode='before')
    @classmethod
    def coerce_keywords(cls, v):
        return _text_list_or_none(v)

    @field_validator('repository', mode='before')
    @classmethod
    def coerce_repository(cls, v):
        if isinstance(v, (str, dict)):
            return v
        return None

    @property
    def repository_url(self) -> str | None:
        if isinstance(self.repository, str):
            return self.repository
        if self.repository is not None:
            return self.repository.url
        return None


class PackageDocument(BaseModel):
    """
    Full package metadata document.

    Versions are kept as raw values; only the version selected by the
    latest dist-tag is validated into a VersionRecord.
    """
    name: str | None = None
    dist_tags: dict[str, Any] | None = Field(default=None, alias="dist-tags")
    versions: dict[str, Any] | None = None

    @field_validator('name', mode='before')
    @classmethod
    def coerce_name(cls, v):
        return _text_or_none(v)

    @property
    def latest(self) -> str | None:
        if not self.dist_tags:
            return None
        return _text_or_none(self.dist_tags.get("latest"))


@dataclass(frozen=True)
class PackageLinks:
    """Links shown alongside a package."""
    npm: str
    repository: str | None = None
    homepage: str | None = None


@dataclass(frozen=True)
class NPMPackage:
    """An executable package found in a scope."""
    name: str
    version: str
    links: PackageLinks
    description: str | None = None
    bin: dict[str, str] | None = None
    dependencies: dict[str, str] | None = None
    scripts: dict[str, str] | None = None
    keywords: list[str] | None = None
    original: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def commands(self) -> list[str]:
        return list(self.bin or {})

    def to_dict(self, include_original: bool = False) -> dict[str, Any]:
        """Convert to a JSON-ready mapping."""
        data = {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "bin": self.bin,
            "dependencies": self.dependencies,
            "scripts": self.scripts,
            "keywords": self.keywords,
            "links": {
                "npm": self.links.npm,
                "repository": self.links.repository,
                "homepage": self.links.homepage,
            },
        }
        if include_original:
            data["original"] = self.original
        return data


@dataclass
class DiscoveryReport:
    """Result of a discovery plus per-package diagnostics."""
    scope: str
    packages: list[NPMPackage] = field(default_factory=list)
    candidates: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[PackageResolutionError] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [pkg.name for pkg in self.packages]
