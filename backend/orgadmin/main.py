import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orgadmin.config import settings
from orgadmin.middleware.exceptions import register_exception_handlers
from orgadmin.middleware.security import HTTPSRedirectMiddleware, SecurityHeadersMiddleware
from orgadmin.routers import (
    actions,
    auth,
    health,
    organizations,
    permissions,
    profile,
    resources,
    roles,
    security_logs,
    users,
)
from orgadmin.utils.redis import close_redis

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("orgadmin starting (environment=%s)", settings.environment)
    yield
    await close_redis()
    logger.info("orgadmin stopped")


app = FastAPI(
    title="orgadmin",
    description="Organization, role and permission administration",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware (outermost first) ─────────────────────────────
app.add_middleware(SecurityHeadersMiddleware)

# HTTPS redirect (production only)
app.add_middleware(HTTPSRedirectMiddleware, force_https=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
# Public
app.include_router(health.router)
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])

# Guarded by require_permission / require_or_deny
app.include_router(profile.router, prefix="/api/profile", tags=["profile"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(organizations.router, prefix="/api/organizations", tags=["organizations"])
app.include_router(roles.router, prefix="/api/roles", tags=["roles"])
app.include_router(resources.router, prefix="/api/resources", tags=["resources"])
app.include_router(actions.router, prefix="/api/actions", tags=["actions"])
app.include_router(permissions.router, prefix="/api/permissions", tags=["permissions"])
app.include_router(security_logs.router, prefix="/api/security-logs", tags=["security-logs"])
