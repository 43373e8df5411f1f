"""
Cannabis club admin backend.

ARCHITECTURE:
- FastAPI: staff API for the counter (dispensary, till, member wallets)
- SQLAlchemy: SQLite by default, PostgreSQL in production
- Services: workflow rules; every money movement runs in one unit of work

MONEY MODEL:
- Till balance is always recomputed from the opening float and its movements
- Member balance is a cache of the wallet ledger, changed only with a ledger row
- Reversals are new rows, never edits of old ones
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from cannaclub.api.routes import auth, cash, dispensary, members, products, reports, users
from cannaclub.core.config import settings
from cannaclub.core.exceptions import BusinessError, ClubError
from cannaclub.core.rate_limiter import RateLimitMiddleware
from cannaclub.db.init_db import init_db
from cannaclub.services.dispensary_service import ReversalPolicy

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Validate business configuration
    2. Create tables, bootstrap admin, seed demo products
    """
    # Fail at boot, not at the first reversal
    ReversalPolicy(settings.WALLET_REVERSAL_POLICY)
    logger.info("Initializing database...")
    init_db()
    logger.info(f"Database ready (wallet reversal policy: {settings.WALLET_REVERSAL_POLICY})")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="Cannabis Club Admin API",
    description="Members, dispensary, cash register and member wallets.",
    version="0.1.0",
    lifespan=lifespan,
)

# SECURITY: Trust only specific hosts
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# SECURITY: Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
    ],
    max_age=600,  # Cache preflight for 10 minutes
    expose_headers=["Content-Type", "Content-Disposition"],
)

# SECURITY: Rate limiting to prevent brute force
app.add_middleware(RateLimitMiddleware)


# SECURITY: Add security headers middleware
@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"  # Prevent MIME sniffing
    response.headers["X-Frame-Options"] = "DENY"  # Prevent clickjacking
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"  # HSTS
    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; font-src 'self'; connect-src 'self';"
    )
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(ClubError)
async def club_error_handler(request: Request, exc: ClubError):
    """Workflow errors become 400/404/409, store failures a generic 500."""
    http_exc = BusinessError.from_domain(exc)
    return JSONResponse(
        status_code=http_exc.status_code,
        content={"detail": http_exc.detail},
        headers=http_exc.headers,
    )


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(members.router, prefix="/members", tags=["members"])
app.include_router(products.router, prefix="/products", tags=["products"])
app.include_router(dispensary.router, prefix="/dispensary", tags=["dispensary"])
app.include_router(cash.router, prefix="/cash/registers", tags=["cash"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])


@app.get("/health")
def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
