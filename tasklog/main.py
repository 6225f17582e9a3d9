"""Main FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from tasklog.api.http import ApiRequest, ApiResponse
from tasklog.api.routes import ALLOWED_METHODS, RequestHandler
from tasklog.config import settings
from tasklog.database import SessionLocal, close_db, init_db
from tasklog.services.auth import BasicAuthVerifier
from tasklog.services.store import sqlalchemy_store_factory

logger = logging.getLogger("tasklog")


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_default_handler() -> RequestHandler:
    """Handler wired to the configured admin credential and the module database."""
    if not settings.admin_password:
        raise RuntimeError("TASKLOG_ADMIN_PASSWORD must be set before the server starts")
    verifier = BasicAuthVerifier(settings.admin_username, settings.admin_password)
    return RequestHandler(verifier, sqlalchemy_store_factory(SessionLocal))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()
    logger.info("Starting tasklog server (%s)", settings.env.value)

    if getattr(app.state, "handler", None) is None:
        app.state.handler = build_default_handler()

    await init_db()
    logger.info("Database initialized")

    yield

    logger.info("Shutting down tasklog server...")
    await close_db()


def to_starlette(response: ApiResponse) -> Response:
    if response.body is None:
        return Response(status_code=response.status_code, headers=response.headers)
    return JSONResponse(response.body, status_code=response.status_code, headers=response.headers)


async def forward(request: Request) -> Response:
    """Hand a Starlette request to the request handler and convert its answer back."""
    api_request = ApiRequest(
        method=request.method,
        path=request.url.path,
        query=dict(request.query_params),
        headers=dict(request.headers),
        body=await request.body(),
    )
    api_response = await request.app.state.handler(api_request)
    return to_starlette(api_response)


def create_app(handler: Optional[RequestHandler] = None) -> FastAPI:
    """Build the application. A handler passed in is used as-is (tests do this)."""
    app = FastAPI(
        title="Tasklog",
        description="Task records with an append-only audit trail.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.handler = handler

    # Methods the catch-all route does not list still get the handler's 401/404 and CORS headers
    @app.exception_handler(StarletteHTTPException)
    async def method_not_allowed(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405 and request.app.state.handler is not None:
            return await forward(request)
        return await http_exception_handler(request, exc)

    # Health check
    @app.get("/health")
    def health_check(request: Request):
        headers = {}
        if request.app.state.handler is not None:
            headers = request.app.state.handler.cors_headers(
                ApiRequest(method=request.method, path=request.url.path, headers=dict(request.headers))
            )
        return JSONResponse({"status": "healthy", "service": "Tasklog"}, headers=headers)

    # Everything else goes through the request handler, which does its own routing
    @app.api_route("/{path:path}", methods=ALLOWED_METHODS + ["PATCH", "HEAD"], include_in_schema=False)
    async def dispatch(path: str, request: Request):
        return await forward(request)

    return app


app = create_app()


def main():
    """Entry point for the application."""
    uvicorn.run(
        "tasklog.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
