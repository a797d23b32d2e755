import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from backend.application import build_compilation_service, configure_compilation_service
from backend.core.settings import ServiceSettings
from backend.routes import compilation, compilers

SERVICE_NAME = "compact-compiler"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class RequestTooLarge(HTTPException):
    def __init__(self, limit: int) -> None:
        super().__init__(status_code=413, detail=f"Request body exceeds {limit} bytes")


def _too_large_response(detail: str) -> JSONResponse:
    return JSONResponse(status_code=413, content={"success": False, "error": detail})


class BodySizeLimit:
    """ASGI middleware capping request bodies at ``max_bytes``.

    A declared ``Content-Length`` is checked up front; chunked bodies are
    counted while the application reads them.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > self.max_bytes:
            response = _too_large_response(f"Request body exceeds {self.max_bytes} bytes")
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise RequestTooLarge(self.max_bytes)
            return message

        await self.app(scope, limited_receive, send)


def create_app(settings: ServiceSettings | None = None) -> FastAPI:
    settings = settings or ServiceSettings.from_env()
    _configure_logging(settings.log_level)

    service = build_compilation_service(settings)
    configure_compilation_service(service)

    app = FastAPI(title="Compact Compiler Service", version="0.1.0")

    origins = list(settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_middleware(BodySizeLimit, max_bytes=settings.max_request_bytes)

    @app.exception_handler(RequestTooLarge)
    async def body_too_large(request: Request, exc: RequestTooLarge) -> JSONResponse:
        return _too_large_response(exc.detail)

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Request body must be a JSON object", "errorType": "client"},
        )

    app.include_router(compilation.router)
    app.include_router(compilation.router, prefix="/api")
    app.include_router(compilers.router)

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "status": "ok",
                "message": "Compact Compiler Service",
                "service": SERVICE_NAME,
                "versions": service.registry.identifiers(),
            }
        )

    return app


app = create_app()
