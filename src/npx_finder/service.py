"""
NPX Finder Service

A small FastAPI service exposing scope discovery over HTTP.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from .config import FinderOptions, configure_logging, finder_logger
from .exceptions import FetchError, InvalidResponseFormatError, InvalidScopeError
from .finder import NpxFinder
from .formatters import format_all
from .models import DiscoveryReport

SEPARATOR = "-" * 50


def create_app(finder: NpxFinder | None = None) -> FastAPI:
    """
    Create the service application.

    Args:
        finder: Finder to serve requests with; one is built from the
            environment at startup when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.finder = finder or NpxFinder(FinderOptions.from_env())
        finder_logger.info(f"NPX Finder service using registry {app.state.finder.options.registry_url}")

        yield

        await app.state.finder.close()

    app = FastAPI(
        title="NPX Finder Service",
        description="Discover executable packages within a registry scope",
        version="1.0.0",
        lifespan=lifespan
    )

    async def run_discovery(scope: str) -> DiscoveryReport:
        try:
            return await app.state.finder.discover_with_report(scope)
        except InvalidScopeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except (FetchError, InvalidResponseFormatError) as e:
            raise HTTPException(status_code=502, detail=str(e))

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/packages/{scope:path}/text", response_class=PlainTextResponse)
    async def get_packages_text(scope: str):
        """Formatted listing of the executable packages in a scope."""
        report = await run_discovery(scope)
        return f"\n{SEPARATOR}\n".join(format_all(pkg) for pkg in report.packages)

    @app.get("/packages/{scope:path}")
    async def get_packages(scope: str, include_original: bool = False):
        """List the executable packages in a scope."""
        report = await run_discovery(scope)
        return {
            "success": True,
            "scope": report.scope,
            "count": len(report.packages),
            "packages": [pkg.to_dict(include_original=include_original) for pkg in report.packages],
            "errors": [
                {"package": error.package_name, "error": str(error.cause)}
                for error in report.errors
            ]
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    configure_logging()

    host = os.getenv("NPX_FINDER_HOST", "0.0.0.0")
    port = int(os.getenv("NPX_FINDER_PORT", "8060"))

    finder_logger.info(f"Starting NPX Finder service on {host}:{port}")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info"
    )
