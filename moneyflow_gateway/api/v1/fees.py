"""POST /v1/fees/quote - price a transfer before confirmation"""

from fastapi import APIRouter, HTTPException

from moneyflow_gateway.api.v1.schemas import FeeQuoteRequest, FeeQuoteResponse
from moneyflow_gateway.domain.exceptions import ValidationError
from moneyflow_gateway.domain.fees import compute_fee
from moneyflow_gateway.utils.currency import currency_for_country

router = APIRouter()


@router.post("/fees/quote", response_model=FeeQuoteResponse)
def quote_fee(request_body: FeeQuoteRequest):
    """
    Compute the fee the sender will be charged and its agent/platform split.

    Sender role and country come from the request body, never from session state.
    """
    try:
        quote = compute_fee(
            request_body.amount,
            request_body.sender_country,
            request_body.recipient_country,
            request_body.sender_role,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return FeeQuoteResponse.from_quote(quote, currency_for_country(request_body.recipient_country))
