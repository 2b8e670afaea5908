# quotelink/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .deps import Services, build_services
from .errors import QuoteLinkError
from .routers import auth, health, public, quotes, stripe_webhook
from .settings import parse_origins

log = logging.getLogger("uvicorn.error")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# ──────────────────────────────────────────────────────────────────────────────
# Error mapping: every failure leaves as {"error": "..."}
# ──────────────────────────────────────────────────────────────────────────────
async def domain_error(request: Request, exc: QuoteLinkError):
    return _error(exc.status_code, exc.message)


async def http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        return _error(404, f"Route not found: {request.method} {request.url.path}")
    return _error(exc.status_code, str(exc.detail))


async def validation_error(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = first.get("msg", "Invalid request")
    return _error(400, f"{where}: {msg}" if where else msg)


async def unexpected_error(request: Request, exc: Exception):
    log.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _error(500, "Internal server error")


def create_app(services: Optional[Services] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        yield

    app = FastAPI(
        title="QuoteLink API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.services = services

    settings = services.settings if services else None
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins if settings else parse_origins(os.environ.get("CORS_ORIGINS")),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(QuoteLinkError, domain_error)
    app.add_exception_handler(StarletteHTTPException, http_error)
    app.add_exception_handler(RequestValidationError, validation_error)
    app.add_exception_handler(Exception, unexpected_error)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(quotes.router)
    app.include_router(public.router)
    app.include_router(stripe_webhook.router)
    return app


app = create_app()

# ──────────────────────────────────────────────────────────────────────────────
# Local dev entrypoint
# ──────────────────────────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        "quotelink.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8000")),
        reload=True,
    )
