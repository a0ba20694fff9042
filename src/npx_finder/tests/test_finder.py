import httpx
import pytest

from npx_finder import npx_finder
from npx_finder.exceptions import (
    InvalidResponseFormatError,
    InvalidScopeError,
    PackageResolutionError,
    TransportError,
)
from npx_finder.finder import NpxFinder, select_scope_packages, validate_scope
from npx_finder.models import SearchResponse

from .fakes import FakeRegistry, make_options, package_document

TEST_PACKAGE = package_document(
    "@test/package",
    description="Test package",
    bin={"test-cmd": "./bin/cli.js"},
    keywords=["test"],
    repository={"type": "git", "url": "git+https://github.com/test/package.git"},
    homepage="https://github.com/test/package",
)


def acme_registry() -> FakeRegistry:
    return FakeRegistry(
        hits=["@acme/cli", "@acme/lib", "@acme/tools", "@other/acme-helper"],
        documents={
            "@acme/cli": package_document("@acme/cli", bin={"acme": "bin/acme.js"}),
            "@acme/lib": package_document("@acme/lib"),
            "@acme/tools": package_document("@acme/tools", version="2.1.0", bin={"acme-tools": "t.js", "at": "t.js"}),
            "@other/acme-helper": package_document("@other/acme-helper", bin={"helper": "h.js"}),
        }
    )


class TestScopeSelection:
    @pytest.mark.parametrize("scope", ["acme", "", "@", "acme/@cli", " @acme"])
    def test_invalid_scopes(self, scope):
        with pytest.raises(InvalidScopeError):
            validate_scope(scope)

    def test_invalid_scope_is_value_error(self):
        with pytest.raises(ValueError):
            validate_scope("acme")

    def test_filters_on_name_prefix(self):
        search = SearchResponse.model_validate({
            "objects": [
                {"package": {"name": "@acme/cli"}},
                {"package": {"name": "@acmecorp/cli"}},
                {"package": {"name": "acme-cli"}},
                {"package": {"name": "@Acme/other"}},
                {"package": {"name": "@acme/cli"}},
                {"package": {"name": "@acme/api"}},
            ]
        })

        assert select_scope_packages(search, "@acme") == ["@acme/cli", "@acme/api"]

    def test_scope_with_slash_uses_raw_prefix(self):
        search = SearchResponse.model_validate({
            "objects": [
                {"package": {"name": "@acme/cli"}},
                {"package": {"name": "@acme/cli-extras"}},
                {"package": {"name": "@acme/api"}},
            ]
        })

        assert select_scope_packages(search, "@acme/cli") == ["@acme/cli", "@acme/cli-extras"]


class TestDiscover:
    @pytest.mark.asyncio
    async def test_invalid_scope_makes_no_request(self):
        registry = acme_registry()

        async with registry.client() as client:
            finder = NpxFinder(make_options(), client=client)
            with pytest.raises(InvalidScopeError):
                await finder.discover("acme")

        assert registry.search_attempts == 0
        assert registry.package_requests == []

    @pytest.mark.asyncio
    async def test_finds_executable_packages_in_scope(self):
        registry = acme_registry()

        async with registry.client() as client:
            packages = await NpxFinder(make_options(), client=client).discover("@acme")

        assert [pkg.name for pkg in packages] == ["@acme/cli", "@acme/tools"]
        assert all(pkg.name.startswith("@acme/") for pkg in packages)
        assert all(pkg.bin for pkg in packages)
        assert packages[1].version == "2.1.0"
        assert packages[1].commands == ["acme-tools", "at"]
        assert "@other/acme-helper" not in registry.package_requests

    @pytest.mark.asyncio
    async def test_prefix_filter_excludes_text_matches(self):
        registry = FakeRegistry(
            hits=["@acme/cli", "@acmecorp/unrelated-but-matching-text"],
            documents={
                "@acme/cli": package_document("@acme/cli", bin={"acme": "a.js"}),
                "@acmecorp/unrelated-but-matching-text": package_document(
                    "@acmecorp/unrelated-but-matching-text", bin={"x": "x.js"}
                ),
            }
        )

        async with registry.client() as client:
            packages = await NpxFinder(make_options(), client=client).discover("@acme")

        assert [pkg.name for pkg in packages] == ["@acme/cli"]
        assert registry.package_requests == ["@acme/cli"]

    @pytest.mark.asyncio
    async def test_empty_scope_returns_empty_list(self):
        registry = FakeRegistry(hits=["@other/cli"])

        async with registry.client() as client:
            packages = await NpxFinder(make_options(), client=client).discover("@acme")

        assert packages == []
        assert registry.package_requests == []

    @pytest.mark.asyncio
    async def test_package_failure_is_isolated(self):
        registry = acme_registry()
        registry.fail_package("@acme/cli", *[503] * 3)

        async with registry.client() as client:
            report = await NpxFinder(make_options(max_retries=2), client=client).discover_with_report("@acme")

        assert report.names == ["@acme/tools"]
        assert report.skipped == ["@acme/lib"]
        assert len(report.errors) == 1
        error = report.errors[0]
        assert isinstance(error, PackageResolutionError)
        assert error.package_name == "@acme/cli"
        assert isinstance(error.cause, TransportError)
        assert error.cause.status_code == 503
        assert registry.package_requests.count("@acme/cli") == 3

    @pytest.mark.asyncio
    async def test_package_recovers_after_retry(self):
        registry = acme_registry()
        registry.fail_package("@acme/cli", httpx.ReadError("connection reset"))

        async with registry.client() as client:
            packages = await NpxFinder(make_options(), client=client).discover("@acme")

        assert [pkg.name for pkg in packages] == ["@acme/cli", "@acme/tools"]

    @pytest.mark.asyncio
    async def test_missing_latest_version_is_skipped(self):
        registry = acme_registry()
        broken = package_document("@acme/cli", version="1.0.0", bin={"acme": "a.js"})
        broken["dist-tags"]["latest"] = "2.0.0"
        registry.documents["@acme/cli"] = broken

        async with registry.client() as client:
            report = await NpxFinder(make_options(), client=client).discover_with_report("@acme")

        assert report.names == ["@acme/tools"]
        assert [error.package_name for error in report.errors] == ["@acme/cli"]
        assert isinstance(report.errors[0].cause, InvalidResponseFormatError)

    @pytest.mark.asyncio
    async def test_malformed_document_is_skipped(self):
        registry = acme_registry()
        registry.documents["@acme/cli"] = {"name": "@acme/cli", "versions": {}}

        async with registry.client() as client:
            packages = await NpxFinder(make_options(), client=client).discover("@acme")

        assert [pkg.name for pkg in packages] == ["@acme/tools"]

    @pytest.mark.asyncio
    async def test_unknown_package_is_skipped(self):
        registry = acme_registry()
        del registry.documents["@acme/cli"]

        async with registry.client() as client:
            report = await NpxFinder(make_options(max_retries=0), client=client).discover_with_report("@acme")

        assert report.names == ["@acme/tools"]
        assert report.errors[0].cause.status_code == 404

    @pytest.mark.asyncio
    async def test_empty_bin_is_not_executable(self):
        registry = FakeRegistry(
            hits=["@acme/cli"],
            documents={"@acme/cli": package_document("@acme/cli", bin={})}
        )

        async with registry.client() as client:
            report = await NpxFinder(make_options(), client=client).discover_with_report("@acme")

        assert report.packages == []
        assert report.skipped == ["@acme/cli"]

    @pytest.mark.asyncio
    async def test_includes_original_document(self):
        registry = FakeRegistry(hits=["@test/package"], documents={"@test/package": TEST_PACKAGE})

        async with registry.client() as client:
            packages = await NpxFinder(make_options(), client=client).discover("@test")

        assert len(packages) == 1
        pkg = packages[0]
        assert pkg.original == TEST_PACKAGE
        assert pkg.original["dist-tags"]["latest"] == pkg.version
        assert pkg.links.repository == "https://github.com/test/package"
        assert pkg.links.npm == "https://www.npmjs.com/package/@test/package"

    @pytest.mark.asyncio
    async def test_discovery_is_repeatable(self):
        registry = acme_registry()

        async with registry.client() as client:
            finder = NpxFinder(make_options(), client=client)
            first = await finder.discover("@acme")
            second = await finder.discover("@acme")

        assert {pkg.name for pkg in first} == {pkg.name for pkg in second}


class TestSearchPhaseFailures:
    @pytest.mark.asyncio
    async def test_search_retries_then_proceeds(self):
        registry = FakeRegistry(hits=["@test/package"], documents={"@test/package": TEST_PACKAGE})
        registry.fail_search(httpx.ConnectError("Network error"), 429)

        async with registry.client() as client:
            packages = await NpxFinder(make_options(max_retries=2), client=client).discover("@test")

        assert registry.search_attempts == 3
        assert [pkg.name for pkg in packages] == ["@test/package"]

    @pytest.mark.asyncio
    async def test_search_failure_is_fatal(self):
        registry = FakeRegistry(hits=["@test/package"], documents={"@test/package": TEST_PACKAGE})
        registry.fail_search(*[httpx.ConnectError("Network error")] * 3)

        async with registry.client() as client:
            with pytest.raises(TransportError, match="Network error") as exc_info:
                await NpxFinder(make_options(max_retries=2), client=client).discover("@test")

        assert registry.search_attempts == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert registry.package_requests == []

    @pytest.mark.asyncio
    async def test_malformed_search_response_is_fatal(self):
        registry = FakeRegistry()
        registry.search_body = {"results": []}

        async with registry.client() as client:
            with pytest.raises(InvalidResponseFormatError):
                await NpxFinder(make_options(), client=client).discover("@test")

        assert registry.search_attempts == 1


class TestNpxFinderFunction:
    @pytest.mark.asyncio
    async def test_rejects_invalid_scope(self):
        with pytest.raises(InvalidScopeError):
            await npx_finder("no-at-sign")

    @pytest.mark.asyncio
    async def test_rejects_invalid_overrides(self):
        with pytest.raises(ValueError):
            await npx_finder("@acme", max_retries=-1)

    @pytest.mark.asyncio
    async def test_rejects_unknown_option_names(self):
        with pytest.raises(ValueError, match="timeout"):
            await npx_finder("@acme", timeout=5000)


class TestLooseManifests:
    @pytest.mark.parametrize("manifest", [
        {"keywords": "cli"},
        {"keywords": ["cli", None]},
        {"homepage": {"url": "https://acme.dev"}},
        {"dependencies": {"commander": None, "zod": "^3.0.0"}},
        {"scripts": ["build"]},
        {"repository": 42},
        {"description": {"en": "Acme CLI"}},
    ])
    @pytest.mark.asyncio
    async def test_odd_field_shapes_keep_package(self, manifest):
        registry = FakeRegistry(
            hits=["@acme/cli"],
            documents={"@acme/cli": package_document("@acme/cli", bin={"acme": "a.js"}, **manifest)}
        )

        async with registry.client() as client:
            report = await NpxFinder(make_options(), client=client).discover_with_report("@acme")

        assert report.names == ["@acme/cli"]
        assert report.errors == []

    @pytest.mark.asyncio
    async def test_odd_fields_are_coerced(self):
        registry = FakeRegistry(
            hits=["@acme/cli"],
            documents={"@acme/cli": package_document(
                "@acme/cli",
                bin={"acme": "a.js"},
                keywords="cli",
                homepage={"url": "https://acme.dev"},
                dependencies={"commander": None, "zod": "^3.0.0"},
            )}
        )

        async with registry.client() as client:
            packages = await NpxFinder(make_options(), client=client).discover("@acme")

        pkg = packages[0]
        assert pkg.keywords == ["cli"]
        assert pkg.links.homepage is None
        assert pkg.dependencies == {"zod": "^3.0.0"}
        assert pkg.original["versions"]["1.0.0"]["homepage"] == {"url": "https://acme.dev"}

    @pytest.mark.asyncio
    async def test_non_string_dist_tag_is_ignored(self):
        document = package_document("@acme/cli", bin={"acme": "a.js"})
        document["dist-tags"]["beta"] = None
        registry = FakeRegistry(hits=["@acme/cli"], documents={"@acme/cli": document})

        async with registry.client() as client:
            packages = await NpxFinder(make_options(), client=client).discover("@acme")

        assert [pkg.name for pkg in packages] == ["@acme/cli"]

    @pytest.mark.asyncio
    async def test_non_string_latest_is_skipped(self):
        document = package_document("@acme/cli", bin={"acme": "a.js"})
        document["dist-tags"]["latest"] = 1
        registry = FakeRegistry(hits=["@acme/cli"], documents={"@acme/cli": document})

        async with registry.client() as client:
            report = await NpxFinder(make_options(), client=client).discover_with_report("@acme")

        assert report.packages == []
        assert isinstance(report.errors[0].cause, InvalidResponseFormatError)


class TestConcurrentLookups:
    @pytest.mark.asyncio
    async def test_all_lookups_are_in_flight_together(self):
        registry = acme_registry()
        registry.hold_packages_until(3)

        async with registry.client() as client:
            finder = NpxFinder(make_options(timeout_ms=500, max_retries=0), client=client)
            report = await finder.discover_with_report("@acme")

        assert report.errors == []
        assert report.names == ["@acme/cli", "@acme/tools"]
        assert registry.max_in_flight == 3
