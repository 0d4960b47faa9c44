"""
LeadsFlow CRM - Setup gate

Until the wizard has completed, only the setup API, the health check and
the API docs answer. Everything else gets 503 with setupRequired: true so
the frontend can redirect to the wizard.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("gate")

OPEN_PATHS = {"/", "/health", "/docs", "/redoc", "/openapi.json", "/docs/oauth2-redirect"}
OPEN_PREFIXES = ("/api/setup/",)

SETUP_REQUIRED_BODY = {
    "error": "Setup required",
    "message": "Please complete the initial setup before using the application",
    "setupRequired": True,
}


def is_gated_path(path: str) -> bool:
    if path in OPEN_PATHS or path == "/api/setup":
        return False
    return not path.startswith(OPEN_PREFIXES)


async def setup_gate(request: Request, call_next):
    """HTTP middleware. The store caches on file mtime, so this is a stat() per request."""
    if request.method != "OPTIONS" and is_gated_path(request.url.path):
        if request.app.state.store.is_setup_required():
            logger.warning(f"[GATE] Blocked {request.method} {request.url.path}: setup required")
            return JSONResponse(status_code=503, content=SETUP_REQUIRED_BODY)
    return await call_next(request)
