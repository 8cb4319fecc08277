"""FastAPI application for the rotating Stripe checkout.

This package provides REST endpoints for:
- PaymentIntent creation on the currently rotated Stripe account
- Stripe webhooks from any configured account
- Rotation status and admin payment stats
- Health check
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from checkout_api.exceptions import register_exception_handlers
from checkout_api.middleware.correlation import CorrelationIdMiddleware
from checkout_api.routes import (
    checkout_session_router,
    payment_intent_router,
    rotation_router,
    webhooks_router,
)
from checkout_core.config import get_settings
from checkout_core.utils.logging import configure_logging

configure_logging()

app = FastAPI(
    title="Checkout API",
    description="Multi-account Stripe checkout: payment intents, webhooks and rotation status",
    version="0.1.0",
)

app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers under /api prefix
# This matches CloudFront routing: /api/* → API Gateway
app.include_router(payment_intent_router, prefix="/api")
app.include_router(checkout_session_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")
app.include_router(rotation_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Health check endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "checkout-api",
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "checkout_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
