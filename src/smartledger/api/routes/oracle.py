"""Oracle endpoints: normalized price and operator price updates."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from smartledger.api.contracts import PriceAnswerRequest, PriceAnswerResponse, PriceResponse
from smartledger.api.dependencies import require_admin_token
from smartledger.oracle.factory import get_oracle
from smartledger.oracle.mock import MockPriceFeed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oracle")


@router.get("/price", response_model=PriceResponse)
async def get_price() -> PriceResponse:
    """Latest validated price, normalized to the reference scale."""
    oracle = get_oracle()
    price = await oracle.get_normalized_price()
    return PriceResponse(
        feed=oracle.feed.name,
        price=str(price.price),
        decimals=price.decimals,
        display=price.as_display(),
        round_id=price.round_id,
        updated_at=price.updated_at,
        raw_answer=str(price.raw_answer),
        raw_decimals=price.raw_decimals,
    )


@router.post("/answer", response_model=PriceAnswerResponse)
async def push_answer(
    request: PriceAnswerRequest, _: bool = Depends(require_admin_token)
) -> PriceAnswerResponse:
    """Publish a new round on the operator-driven feed (mock feed only)."""
    feed = get_oracle().feed
    if not isinstance(feed, MockPriceFeed):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{feed.name} feed does not accept operator answers",
        )

    feed.update_answer(int(request.answer), updated_at=request.updated_at)
    data = await feed.latest_round_data()
    logger.info(f"Operator pushed answer {data.answer} as round {data.round_id}")

    return PriceAnswerResponse(
        feed=feed.name,
        round_id=data.round_id,
        answer=str(data.answer),
        decimals=await feed.decimals(),
        updated_at=data.updated_at,
    )
