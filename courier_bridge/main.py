"""
Bob Go courier bridge – FastAPI entry point.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from courier_bridge.config import get_settings
from courier_bridge.database import AsyncSessionLocal, create_tables
from courier_bridge.errors import BridgeError
from courier_bridge.routers import admin as api_admin
from courier_bridge.routers import checkout, configurations, fp, schemes, webhooks
from courier_bridge.admin.auth import bootstrap_admin
from courier_bridge.admin.deps import AdminNotAuthenticated
from courier_bridge.admin.routers import audit, auth_routes, dashboard
from courier_bridge.admin.routers import configurations as admin_configurations

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s – %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


async def _bootstrap_admin() -> None:
    """Create the first admin user from env vars if no admin_users exist."""
    username = settings.bootstrap_admin_user
    password = settings.bootstrap_admin_password
    if not username or not password:
        return

    async with AsyncSessionLocal() as session:
        try:
            if await bootstrap_admin(session, username, password):
                await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning("Bootstrap admin skipped: %s", exc)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    await _bootstrap_admin()
    logger.info("Courier bridge ready (platform=%s).", settings.platform_base)
    yield


app = FastAPI(
    title="Bob Go Courier Bridge",
    version="1.0.0",
    description="Relays shipments, rates and tracking between the commerce platform and Bob Go.",
    lifespan=lifespan,
)

# ── Middleware ────────────────────────────────────────────────────────────────

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    session_cookie="bridge_session",
    https_only=False,   # set to True behind TLS in production
    same_site="lax",
    max_age=86400 * 7,  # 7 days
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def _log_requests(request: Request, call_next):
    logger.info(
        "%s %s company=%s",
        request.method, request.url.path, request.headers.get("x-company-id", "-"),
    )
    return await call_next(request)


# ── Exception handlers ────────────────────────────────────────────────────────

@app.exception_handler(AdminNotAuthenticated)
async def _admin_not_authenticated(request: Request, exc: AdminNotAuthenticated):
    return RedirectResponse(url="/admin/login", status_code=303)


@app.exception_handler(BridgeError)
async def _bridge_error(request: Request, exc: BridgeError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


# ── Routers ───────────────────────────────────────────────────────────────────

# JSON API
app.include_router(configurations.router)
app.include_router(checkout.router)
app.include_router(webhooks.router)
app.include_router(schemes.router)
app.include_router(fp.router)
app.include_router(api_admin.router)

# Admin UI (HTML + session auth)
app.include_router(auth_routes.router)
app.include_router(dashboard.router)
app.include_router(admin_configurations.router)
app.include_router(audit.router)
