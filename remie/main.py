import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from remie.core.config import get_settings
from remie.core.logging import setup_logging
from remie.database import engine, Base
from remie.api import admin, auth, loans, notifications, p2p, receipts, remittance, rrr, users, wallet, webhooks

# Import all models to register them with SQLAlchemy
import remie.models  # noqa: F401

settings = get_settings()

setup_logging(settings.LOG_LEVEL, structured=settings.LOG_JSON)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

app = FastAPI(
    title=settings.APP_NAME,
    description="Student payment platform: wallet funding, P2P transfers, RRR institutional payments, "
                "international remittances and microloans.",
    version="1.0.0",
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Authentication", "description": "Registration, login and token refresh"},
        {"name": "Wallet", "description": "Balances, Paystack funding, withdrawals and transaction history"},
        {"name": "P2P", "description": "Wallet-to-wallet transfers between users"},
        {"name": "RRR", "description": "Remita Retrieval References for institutional payments"},
        {"name": "Remittance", "description": "International transfers"},
        {"name": "Loans", "description": "Student microloans"},
        {"name": "Admin", "description": "Back-office operations (ADMIN role)"},
    ],
    swagger_ui_parameters={
        "persistAuthorization": True,
    }
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    from fastapi.openapi.utils import get_openapi

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=app.openapi_tags,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "Bearer": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Access token from /api/v1/auth/login"
        }
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

# CORS middleware - the dashboard is served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    """
    Runs when the application starts up.
    Creates all database tables if they don't exist.
    """
    logger.info("Starting up %s", settings.APP_NAME)
    Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down %s", settings.APP_NAME)


@app.get("/health")
async def health_check():
    """
    Health check endpoint.
    """
    return {
        "status": "healthy",
        "app_name": settings.APP_NAME,
        "version": app.version,
    }


@app.get(API_PREFIX)
async def api_index():
    """
    Index of the API's endpoint groups.
    """
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": app.version,
        "endpoints": {
            name: f"{API_PREFIX}/{name}"
            for name in (
                "auth", "users", "wallet", "p2p", "rrr", "remittance",
                "loans", "receipts", "notifications", "admin", "webhooks",
            )
        },
    }


for module in (auth, users, wallet, webhooks, p2p, rrr, remittance, loans, receipts, notifications, admin):
    app.include_router(module.router, prefix=API_PREFIX)
