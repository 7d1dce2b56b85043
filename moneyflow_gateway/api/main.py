"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from moneyflow_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from moneyflow_gateway.api.v1 import commissions, fees, reconciliation, transfers
from moneyflow_gateway.infrastructure.observability.logging import setup_logging
from moneyflow_gateway.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="MoneyFlow Gateway",
        description="Transfer pricing, settlement and commission reporting service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(fees.router, prefix="/v1", tags=["fees"])
    app.include_router(transfers.router, prefix="/v1", tags=["transfers"])
    app.include_router(commissions.router, prefix="/v1", tags=["commissions"])
    app.include_router(reconciliation.router, prefix="/v1", tags=["reconciliation"])

    return app


app = create_app()
