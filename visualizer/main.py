#!/usr/bin/env python3
"""
Map View Visualizer: proxy between the map capture page and a vision AI backend.

Responsibilities:
- Build the FastAPI app from an explicit Config
- Register CORS, request logging and security header middleware
- Map the error taxonomy onto HTTP responses
- Expose /api/generate, /health and the smoke-test endpoints
"""
import json
import logging
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .backends import GenerationBackend, build_backend, build_providers
from .config import Config
from .errors import BackendError, PayloadTooLarge, UnexpectedError, VisualizerError
from .pipeline import process_generation

logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = [
    "GET /health",
    "GET /test",
    "GET /test-gemini",
    "POST /api/generate",
]

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_backend(request: Request) -> GenerationBackend:
    return request.app.state.backend


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(config: Optional[Config] = None,
               backend: Optional[GenerationBackend] = None,
               providers: Optional[Dict[str, Any]] = None) -> FastAPI:
    """
    Build the application.

    ``backend`` and ``providers`` default to what ``config`` describes; tests
    pass fakes in instead.
    """
    if config is None:
        config = Config.from_env()
    if providers is None:
        providers = build_providers(config)
    if backend is None:
        backend = build_backend(config, providers)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Map Visualizer server...")
        logger.info(f"Backend: {backend.name}")
        logger.info(f"Endpoints: {', '.join(AVAILABLE_ENDPOINTS)}")
        logger.info(f"GEMINI_API_KEY: {'set' if config.gemini_configured else 'missing'}")
        yield
        logger.info("Shutting down Map Visualizer server...")

    app = FastAPI(
        title="Map Visualizer API",
        description="Describe captured map views with a vision AI backend",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.backend = backend
    app.state.providers = providers

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=600,
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
        return response

    @app.exception_handler(VisualizerError)
    async def visualizer_error_handler(request: Request, exc: VisualizerError):
        body = exc.to_dict()
        if exc.status_code >= 500:
            logger.error(f"Server error on {request.url.path}: {exc.message}", exc_info=exc)
            if config.debug:
                body["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={
                "error": "Not Found",
                "path": request.url.path,
                "method": request.method,
                "availableEndpoints": AVAILABLE_ENDPOINTS,
            })
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail},
                            headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
        body = {"error": "Internal server error", "message": str(exc)}
        if config.debug:
            body["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        # runs outside the middleware stack, so the headers are added here
        return JSONResponse(status_code=500, content=body, headers=SECURITY_HEADERS)

    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    @app.post("/api/generate")
    async def generate(
        request: Request,
        cfg: Config = Depends(get_config),
        gen_backend: GenerationBackend = Depends(get_backend),
    ):
        """
        Describe a captured map view.

        Body: ``{imageData, pitch, bearing, zoom, location: {lat, lng}}``.
        Backend failures still answer 200 with ``success: false``.
        """
        logger.info("Received request to /api/generate")
        raw = await request.body()
        if len(raw) > cfg.max_body_bytes:
            raise PayloadTooLarge(len(raw) / (1024 * 1024), cfg.max_body_mb,
                                  message="Request body too large")
        try:
            body = json.loads(raw)
        except ValueError as e:
            raise UnexpectedError(f"Malformed JSON body: {e}")

        response = await process_generation(body, gen_backend, cfg.max_image_mb)
        return response.to_json()

    @app.get("/health")
    async def health_check(
        request: Request,
        cfg: Config = Depends(get_config),
        gen_backend: GenerationBackend = Depends(get_backend),
    ):
        """Liveness plus which backend and keys are configured."""
        info = gen_backend.describe()
        return {
            "status": "ok",
            "message": "Map Visualizer Server",
            "version": __version__,
            "backend": info.pop("backend", gen_backend.name),
            "backendInfo": info,
            "providers": {name: p.configured for name, p in request.app.state.providers.items()},
            "geminiConfigured": cfg.gemini_configured,
            "timestamp": _now(),
        }

    @app.get("/test")
    async def test_endpoint():
        return {
            "message": "Server is working!",
            "endpoints": {
                "health": "/health",
                "generate": "POST /api/generate",
                "test": "/test",
                "testGemini": "/test-gemini",
            },
            "timestamp": _now(),
        }

    @app.get("/test-gemini")
    async def test_gemini(request: Request):
        """Round-trip a one-word prompt through Gemini."""
        provider = request.app.state.providers.get("gemini")
        if provider is None or not provider.configured:
            return JSONResponse(status_code=503, content={
                "success": False,
                "error": "Gemini API key is not configured",
            })
        logger.info("Testing Gemini API...")
        try:
            text = await provider.generate_text("Say hello in one word")
        except BackendError as e:
            logger.error(f"Gemini smoke test failed: {e.message}")
            content = {"success": False, "error": e.message}
            if e.details is not None:
                content["details"] = e.details
            return JSONResponse(status_code=500, content=content)
        return {"success": True, "message": "Gemini API is working!", "response": text}

    return app


def main() -> None:
    config = Config.from_env()
    setup_logging(config.log_level)
    uvicorn.run(create_app(config), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
