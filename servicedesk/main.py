"""
ServiceDesk API
FastAPI application entry point

- Rate limiting with SlowAPI
- Bilingual error bodies and error sanitization middleware
- Health endpoint with DB ping
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from servicedesk import __version__
from servicedesk.api.routes import (
    audit_logs,
    auth,
    customers,
    dashboard,
    documents,
    employees,
    invoices,
    notifications,
    payments,
    permissions,
    requests,
    roles,
    services,
)
from servicedesk.api.routes import settings as settings_routes
from servicedesk.core.config import settings
from servicedesk.core.database import AsyncSessionLocal
from servicedesk.core.error_handler import ErrorSanitizationMiddleware, register_exception_handlers
from servicedesk.core.rate_limit import limiter, rate_limit_exceeded_handler

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    logger.info(f"{settings.APP_NAME} {__version__} starting ({settings.ENVIRONMENT})")
    yield
    logger.info(f"{settings.APP_NAME} shutting down")


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="""
## ServiceDesk API

Bilingual (Arabic / English) service request platform for engineering and
testing services.

### Authentication
Customers register and log in at `/api/auth/register` and `/api/auth/login`.
Employees log in at `/api/auth/employee/login`. Send the access token as
`Authorization: Bearer <token>`.

### Authorization
Employees act through their role's permissions (`module:action`). The Admin
role holds every registered permission. Customers have a fixed capability set
and only ever see their own data.

### Errors
Every error body carries `message` and `message_ar`.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Health", "description": "Health check"},
        {"name": "Authentication", "description": "Registration, login and token management"},
        {"name": "Requests", "description": "Service requests and their workflow"},
        {"name": "Roles", "description": "Role administration"},
        {"name": "Permissions", "description": "Permission registry"},
        {"name": "Customers", "description": "Customer accounts"},
        {"name": "Employees", "description": "Employee accounts"},
        {"name": "Services", "description": "Service catalog"},
        {"name": "Invoices", "description": "Invoices"},
        {"name": "Payments", "description": "Payments"},
        {"name": "Documents", "description": "Document uploads"},
        {"name": "Notifications", "description": "In-app and email notifications"},
        {"name": "Dashboard", "description": "Summary statistics"},
        {"name": "Audit Logs", "description": "Audit trail"},
    ],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Bilingual error bodies
register_exception_handlers(app)

# Error sanitization (catches unhandled exceptions)
app.add_middleware(ErrorSanitizationMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api = settings.API_PREFIX
app.include_router(auth.router, prefix=f"{api}/auth", tags=["Authentication"])
app.include_router(requests.router, prefix=f"{api}/requests", tags=["Requests"])
app.include_router(roles.router, prefix=f"{api}/roles", tags=["Roles"])
app.include_router(permissions.router, prefix=f"{api}/permissions", tags=["Permissions"])
app.include_router(customers.router, prefix=f"{api}/customers", tags=["Customers"])
app.include_router(employees.router, prefix=f"{api}/employees", tags=["Employees"])
app.include_router(services.router, prefix=f"{api}/services", tags=["Services"])
app.include_router(settings_routes.router, prefix=f"{api}/settings", tags=["Settings"])
app.include_router(invoices.router, prefix=f"{api}/invoices", tags=["Invoices"])
app.include_router(payments.router, prefix=f"{api}/payments", tags=["Payments"])
app.include_router(documents.router, prefix=f"{api}/documents", tags=["Documents"])
app.include_router(notifications.router, prefix=f"{api}/notifications", tags=["Notifications"])
app.include_router(dashboard.router, prefix=f"{api}/dashboard", tags=["Dashboard"])
app.include_router(audit_logs.router, prefix=f"{api}/audit-logs", tags=["Audit Logs"])


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check with an actual DB ping.
    Returns 503 if the database is unreachable.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    try:
        async with AsyncSessionLocal() as db:
            await db.execute(text("SELECT 1"))
        health_status["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check database ping failed: {e}")
        health_status["database"] = f"error: {type(e).__name__}"
        health_status["status"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    return health_status
