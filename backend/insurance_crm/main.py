"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from insurance_crm.api.responses import error_response
from insurance_crm.api.v1 import (
    auth,
    clients,
    dashboard,
    documents,
    email_automation,
    health,
    leads,
    policy_instances,
    policy_templates,
    settings as agent_settings,
    whatsapp_automation,
)
from insurance_crm.core.config import settings
from insurance_crm.core.errors import CRMError
from insurance_crm.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging("DEBUG" if settings.APP_ENV == "development" else "INFO")
    logger.info("Application starting", env=settings.APP_ENV, version=settings.APP_VERSION)
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="Insurance CRM API",
    description="Leads, clients, policies and automated messaging for an insurance agent",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Error envelope ───────────────────────────
@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    return error_response(exc.status_code, exc.message, exc.errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path")),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", errors)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error", path=request.url.path, error=str(exc.orig))
    return error_response(status.HTTP_409_CONFLICT, "Record conflicts with existing data")


API_PREFIX = "/api/v1"
app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(agent_settings.router, prefix=API_PREFIX)
app.include_router(leads.router, prefix=API_PREFIX)
app.include_router(clients.router, prefix=API_PREFIX)
app.include_router(documents.router, prefix=API_PREFIX)
app.include_router(policy_templates.router, prefix=API_PREFIX)
app.include_router(policy_instances.router, prefix=API_PREFIX)
app.include_router(dashboard.router, prefix=API_PREFIX)
app.include_router(whatsapp_automation.router, prefix=API_PREFIX)
app.include_router(email_automation.router, prefix=API_PREFIX)
app.include_router(health.router)
