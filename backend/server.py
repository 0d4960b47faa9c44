"""
LeadsFlow CRM - API Backend

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 5000 --reload
ou:
    python server.py

Until the setup wizard has run, only /api/setup/*, /health and / answer.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from config import (
    APP_ENV,
    APP_NAME,
    CONFIG_ENCRYPTION_KEY,
    CONFIG_FILE_PATH,
    CORS_ORIGINS,
    PORT,
    RuntimeConfig,
    now_iso,
)
from services.config_store import EncryptedConfigStore
from services.database import Database, check_connection
from services.gate import setup_gate

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("leadsflow")

VERSION = "1.0.0"


def create_app(
    store: Optional[EncryptedConfigStore] = None,
    runtime: Optional[RuntimeConfig] = None,
    database: Optional[Database] = None,
    connection_tester=check_connection,
) -> FastAPI:
    """
    Build the application around one store, one runtime config and one
    database handle, all kept on app.state.
    """
    app = FastAPI(
        title=APP_NAME,
        description="Lead management CRM",
        version=VERSION,
    )

    app.state.store = store or EncryptedConfigStore(CONFIG_FILE_PATH, CONFIG_ENCRYPTION_KEY)
    app.state.runtime = runtime or RuntimeConfig.from_env()
    app.state.database = database or Database()
    app.state.connection_tester = connection_tester

    # ==================== MIDDLEWARE ====================
    # Last added runs first: CORS, then request log, then the gate

    app.middleware("http")(setup_gate)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # ==================== IMPORT DES ROUTES ====================

    from routes import (
        activities,
        auth,
        auth_config,
        config as config_routes,
        dashboard,
        followups,
        leads,
        notes,
        notifications,
        setup,
        users,
    )

    app.include_router(setup.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(users.router, prefix="/api")
    app.include_router(leads.router, prefix="/api")
    app.include_router(notes.router, prefix="/api")
    app.include_router(activities.router, prefix="/api")
    app.include_router(followups.router, prefix="/api")
    app.include_router(auth_config.router, prefix="/api")
    app.include_router(config_routes.router, prefix="/api")
    app.include_router(dashboard.router, prefix="/api")
    app.include_router(notifications.router, prefix="/api")

    # ==================== ROUTES RACINE ====================

    @app.get("/")
    async def root():
        return {
            "name": APP_NAME,
            "version": VERSION,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "timestamp": now_iso(),
            "setupRequired": app.state.store.is_setup_required(),
            "runtimeConfigured": app.state.runtime.setup_completed,
        }

    # ==================== STARTUP / SHUTDOWN ====================

    @app.on_event("startup")
    async def startup():
        logger.info(f"🚀 {APP_NAME} v{VERSION} starting ({APP_ENV})")

        if not CONFIG_ENCRYPTION_KEY and store is None:
            logger.warning("CONFIG_ENCRYPTION_KEY is not set: configuration cannot be read or saved")

        if app.state.store.is_setup_required():
            if app.state.runtime.setup_completed:
                logger.warning("SETUP_COMPLETED is set but no completed configuration could be loaded")
            logger.warning("⚠️ Setup required: only /api/setup is available until the wizard completes")
            return

        app.state.runtime.reload(app.state.store)
        runtime = app.state.runtime
        if await app.state.database.connect(runtime.mongodb_uri, runtime.database_name):
            try:
                await app.state.database.ensure_indexes()
            except Exception as e:
                logger.error(f"Index creation failed: {e}")
            logger.info("✅ Database ready")
        else:
            logger.error("❌ Database unavailable: API calls will answer 503 until restart")

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.database.close()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
