#===============================================================================
# ADBOARD - MAIN APPLICATION FILE (app.py)
# Ad platform connections and lead capture backend for the marketing dashboard
#
# - OAuth connect flow for Google Search Console, Google Ads and Meta
# - Search Console and Google Ads reporting endpoints
# - Website form webhook feeding the lead inbox
#===============================================================================

#-- Section 1: Core Imports
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adboard import __version__
from adboard.config.settings import settings
from adboard.core.database import db_manager
from adboard.core.errors import ConfigurationError, DashboardError, StorageFailure
from adboard.core.health import get_health_status
from adboard.core.safe_logger import init_safe_logging
from adboard.core.schema import ensure_schema

#-- Section 2: Integration Routers
from adboard.integrations.forms.router import router as forms_router
from adboard.integrations.google_ads.router import router as google_ads_router
from adboard.integrations.oauth.router import router as oauth_router
from adboard.integrations.search_console.router import router as search_console_router

logger = logging.getLogger(__name__)


#-- Section 3: Exception Handlers
async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {type(exc).__name__}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={'error': 'Internal server error'})


#-- Section 4: App Factory
def create_app() -> FastAPI:
    app = FastAPI(
        title="Adboard",
        description="Ad platform OAuth, reporting and lead capture API",
        version=__version__,
    )

    # The form webhook is called from arbitrary customer websites
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    app.add_exception_handler(DashboardError, dashboard_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(oauth_router)
    app.include_router(search_console_router)
    app.include_router(google_ads_router)
    app.include_router(forms_router)

    @app.get("/health")
    async def health():
        return await get_health_status()

    @app.on_event("startup")
    async def startup_event():
        """Configure logging and make sure the tables exist"""
        init_safe_logging(settings.log_level, use_structured=settings.log_json)
        logger.info(f"🚀 Starting Adboard v{__version__} ({settings.environment})")

        try:
            await db_manager.connect()
            await ensure_schema(db_manager)
            logger.info("✅ Database connected")
        except (ConfigurationError, StorageFailure) as e:
            # Keep serving; store-backed endpoints fail until the DB is reachable
            logger.error(f"❌ Database unavailable at startup: {e}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await db_manager.disconnect()
        logger.info("👋 Adboard stopped")

    return app


app = create_app()


#-- Section 5: Local Development Server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("adboard.app:app", host="0.0.0.0", port=8000, reload=settings.debug)
