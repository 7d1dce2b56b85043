"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from moneyflow_gateway.config import settings
from moneyflow_gateway.domain.settlement import SettlementOrchestrator
from moneyflow_gateway.infrastructure.clients.platform import PlatformClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_platform_client() -> PlatformClient:
    """Provide hosted data platform client instance"""
    return PlatformClient()


def get_orchestrator(platform: PlatformClient = Depends(get_platform_client)) -> SettlementOrchestrator:
    """Provide a settlement orchestrator bound to the platform client"""
    return SettlementOrchestrator(platform, monthly_limit=settings.monthly_transfer_limit)
