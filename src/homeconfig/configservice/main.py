"""Configuration Service - signed storage API for home screen configurations."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from homeconfig import __version__
from homeconfig.common.auth import SignatureAuthGate, SignatureAuthMiddleware
from homeconfig.common.errors import ErrorCode, error_response
from homeconfig.common.http import RequestIdMiddleware, get_caller_id
from homeconfig.common.logging import get_logger, setup_logging
from homeconfig.common.settings import Settings, get_settings
from homeconfig.common.signing import AUTH_HEADERS
from homeconfig.configservice.store import ConfigurationNotFound, ConfigurationStore
from homeconfig.configservice.validation import validate_config

logger = get_logger(__name__)


class ConfigurationServer:
    """HTTP handlers for the configurations API."""

    def __init__(self, settings: Settings):
        """Initialize server."""
        self._settings = settings
        self._store: ConfigurationStore | None = None

    async def startup(self) -> None:
        """Open the configuration store."""
        logger.info("Starting configuration service...")
        self._store = ConfigurationStore(self._settings.database_path)
        logger.info("Configuration service ready", api_prefix=self._settings.api_prefix)

    async def shutdown(self) -> None:
        """Close the configuration store."""
        if self._store:
            self._store.close()
            self._store = None

    def _require_store(self) -> ConfigurationStore:
        if not self._store:
            raise RuntimeError("Configuration store not initialized")
        return self._store

    @staticmethod
    def _owner(request: Request) -> str:
        caller_id = get_caller_id(request)
        if not caller_id:
            raise RuntimeError("Handler reached without an authenticated caller")
        return caller_id

    @staticmethod
    async def _read_config_data(request: Request) -> tuple[Any, Response | None]:
        """Parse ``{"data": ...}`` from the body and validate it."""
        try:
            payload = await request.json()
        except ValueError:
            return None, error_response(
                ErrorCode.BAD_REQUEST,
                "Request body must be valid JSON",
                status_code=400,
            )

        data = payload.get("data") if isinstance(payload, dict) else None
        if data is None:
            return None, error_response(
                ErrorCode.BAD_REQUEST,
                "Configuration data is required in request body",
                status_code=400,
            )

        error = validate_config(data)
        if error:
            return None, error_response(ErrorCode.VALIDATION_ERROR, error, status_code=400)
        return data, None

    # === HTTP Handlers ===

    async def handle_list(self, request: Request) -> JSONResponse:
        """GET /api/configurations"""
        records = self._require_store().list_for_owner(self._owner(request))
        return JSONResponse([record.to_dict() for record in records])

    async def handle_get(self, request: Request) -> JSONResponse:
        """GET /api/configurations/{config_id}"""
        record = self._require_store().get(request.path_params["config_id"], self._owner(request))
        if not record:
            return error_response(ErrorCode.NOT_FOUND, "Configuration not found", status_code=404)
        return JSONResponse(record.to_dict())

    async def handle_create(self, request: Request) -> Response:
        """POST /api/configurations"""
        data, error = await self._read_config_data(request)
        if error:
            return error
        record = self._require_store().create(self._owner(request), data)
        logger.info("Configuration created", config_id=record.id)
        return JSONResponse(record.to_dict(), status_code=201)

    async def handle_update(self, request: Request) -> Response:
        """PUT /api/configurations/{config_id}"""
        data, error = await self._read_config_data(request)
        if error:
            return error
        config_id = request.path_params["config_id"]
        try:
            record = self._require_store().update(config_id, self._owner(request), data)
        except ConfigurationNotFound:
            return error_response(ErrorCode.NOT_FOUND, "Configuration not found", status_code=404)
        logger.info("Configuration updated", config_id=config_id)
        return JSONResponse(record.to_dict())

    async def handle_delete(self, request: Request) -> Response:
        """DELETE /api/configurations/{config_id}"""
        config_id = request.path_params["config_id"]
        if not self._require_store().delete(config_id, self._owner(request)):
            return error_response(ErrorCode.NOT_FOUND, "Configuration not found", status_code=404)
        logger.info("Configuration deleted", config_id=config_id)
        return Response(status_code=204)

    async def handle_health(self, _request: Request) -> JSONResponse:
        """Health check."""
        return JSONResponse(
            {
                "service": "Configuration Service",
                "version": __version__,
                "status": "running",
            }
        )


async def _http_error(request: Request, exc: HTTPException) -> Response:
    if exc.status_code != 404:
        return error_response(str(exc.detail), str(exc.detail), status_code=exc.status_code)
    return error_response(
        ErrorCode.NOT_FOUND,
        f"Route {request.method} {request.url.path} not found",
        status_code=404,
    )


async def _server_error(_request: Request, exc: Exception) -> Response:
    logger.exception("Unhandled error", error=str(exc))
    return error_response(
        ErrorCode.INTERNAL_ERROR,
        "An unexpected error occurred",
        status_code=500,
    )


def create_app(settings: Settings | None = None) -> Starlette:
    """Create the Starlette application."""
    settings = settings or get_settings()
    gate = SignatureAuthGate(
        settings.signing_credentials(),
        replay_window_ms=settings.replay_window_ms,
    )
    server = ConfigurationServer(settings)

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await server.startup()
        yield
        await server.shutdown()

    prefix = settings.api_prefix.rstrip("/")
    routes = [
        Route("/", server.handle_health, methods=["GET"]),
    ]
    for collection_path in (prefix, f"{prefix}/"):
        routes += [
            Route(collection_path, server.handle_list, methods=["GET"]),
            Route(collection_path, server.handle_create, methods=["POST"]),
        ]
    routes += [
        Route(f"{prefix}/{{config_id}}", server.handle_get, methods=["GET"]),
        Route(f"{prefix}/{{config_id}}", server.handle_update, methods=["PUT"]),
        Route(f"{prefix}/{{config_id}}", server.handle_delete, methods=["DELETE"]),
    ]

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            HTTPException: _http_error,
            Exception: _server_error,
        },
    )

    app.add_middleware(SignatureAuthMiddleware, settings=settings, gate=gate)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_allowed_origin],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", *AUTH_HEADERS],
        allow_credentials=True,
    )

    return app


def main() -> None:
    """Entry point for the configuration service."""
    settings = get_settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
    app = create_app(settings)

    uvicorn.run(
        app,
        host=settings.service_host,
        port=settings.service_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
