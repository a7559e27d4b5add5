"""
Raffle Sales API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.error_handlers import register_error_handlers
from settings import get_settings

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Create FastAPI application
app = FastAPI(
    title="Raffle Sales API",
    description="REST API for buying numbered raffle entries",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Browsers call the purchase/quote endpoints directly; Stripe calls the webhook.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

register_error_handlers(app)


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "raffle-sales-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Raffle Sales API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import purchases, quotes, webhooks

app.include_router(quotes.router, prefix="/api/v1", tags=["Quotes"])
app.include_router(purchases.router, prefix="/api/v1", tags=["Purchases"])
app.include_router(webhooks.router, prefix="/api/v1", tags=["Webhooks"])
