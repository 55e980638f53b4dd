"""FastAPI application factory for the gws REST API."""

from fastapi import APIRouter, FastAPI

from gws.api.routes import register_routes


def create_app(loop) -> FastAPI:
    """Build and return a FastAPI app wired to the given CommandLoop."""
    app = FastAPI(title="gws", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_routes(api, loop)
    app.include_router(api)

    return app
