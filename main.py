import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError
import uvicorn

from config import get_settings
from database import check_connection, classify_db_error
from exceptions import PortalError
from logging_config import configure_logging
from routers import admin_router, auth_router, company_router, payouts_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    # App instance
    app = FastAPI(title="Owner Portal API")

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(company_router)
    app.include_router(payouts_router)

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(DBAPIError)
    async def database_error_handler(request: Request, exc: DBAPIError):
        error = classify_db_error(exc)
        logger.error("Database error on %s %s: %s", request.method, request.url.path, error.detail)
        return JSONResponse(status_code=error.status_code, content={"error": error.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Invalid request to %s: %s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.get("/api/health")
    def health():
        database_ok = check_connection()
        return {"status": "ok" if database_ok else "degraded", "database": database_ok}

    # 404 Fallback Middleware
    @app.middleware("http")
    async def not_found_middleware(request: Request, call_next):
        try:
            response = await call_next(request)
            if response.status_code == 404 and request.url.path not in _routes_with_404(app):
                return JSONResponse(status_code=404, content={"error": "Route not found"})
            return response
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


def _routes_with_404(app: FastAPI) -> set:
    """Paths whose handlers can legitimately answer 404 themselves."""
    return {route.path for route in app.routes if getattr(route, "path", None)}


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=get_settings().PORT, reload=True)
