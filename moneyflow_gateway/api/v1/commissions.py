"""GET /v1/commissions/summary - agent and enterprise commission report"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from moneyflow_gateway.api.dependencies import get_platform_client, get_request_id
from moneyflow_gateway.api.v1.schemas import CommissionSummaryResponse
from moneyflow_gateway.config import settings
from moneyflow_gateway.domain.commissions import aggregate
from moneyflow_gateway.domain.exceptions import PlatformError
from moneyflow_gateway.infrastructure.clients.platform import PlatformClient
from moneyflow_gateway.utils.currency import XAF_PER_UNIT, convert_currency

router = APIRouter()


@router.get("/commissions/summary", response_model=CommissionSummaryResponse)
async def get_commission_summary(
    request: Request,
    agent_id: str = Query(..., description="Agent identifier"),
    currency: str | None = Query(None, description="Display currency, defaults to the base currency"),
    platform: PlatformClient = Depends(get_platform_client),
):
    """
    Aggregate an agent's transfer and completed withdrawal history into
    commission totals.

    Totals are computed in the base currency and converted only for display.
    """
    base_currency = settings.base_currency
    display_currency = (currency or base_currency).upper()
    if display_currency not in XAF_PER_UNIT:
        raise HTTPException(status_code=400, detail=f"Unsupported currency: {display_currency}")

    try:
        transfers = await platform.list_transfer_rows(agent_id)
        withdrawals = await platform.list_withdrawal_rows(agent_id)
    except PlatformError as e:
        logging.error(f"Platform error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Data platform unavailable")

    summary = aggregate(transfers, withdrawals)

    return CommissionSummaryResponse.from_summary(
        agent_id,
        display_currency,
        summary,
        lambda amount: convert_currency(amount, base_currency, display_currency),
    )
