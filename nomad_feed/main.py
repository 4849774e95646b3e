"""FastAPI application setup for the realtime city feed."""

from typing import Optional

from fastapi import FastAPI, Request, Response

from .api import CORS_HEADERS, router as api_router
from .feed import RealtimeFeed, build_feed

APP_TITLE = "Nomad City Realtime Feed"


def create_app(feed: Optional[RealtimeFeed] = None) -> FastAPI:
    """Build the app around a feed; tests pass their own, the server builds one from settings."""
    application = FastAPI(title=APP_TITLE)
    application.state.feed = feed or build_feed()

    @application.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        """Allow any origin on every response, errors included."""
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @application.options("/{path:path}", include_in_schema=False)
    def preflight(path: str):
        """Answer CORS preflight for every route with an empty 200."""
        return Response(status_code=200, headers=CORS_HEADERS)

    application.include_router(api_router)
    return application


app = create_app()
