"""Current-rate read endpoint and the admin override/reset actions."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ratedesk.api.deps import get_rate_cache, require_admin
from ratedesk.api.schemas import RateOverrideBody, rate_to_dict
from ratedesk.exceptions import InvalidAmountError
from ratedesk.logging import get_logger
from ratedesk.models import Account
from ratedesk.rates.cache import RateCache

logger = get_logger(__name__)

router = APIRouter()


@router.get("/rates/current")
async def get_current_rate(cache: RateCache = Depends(get_rate_cache)) -> JSONResponse:
    """Current rate, refreshed from upstream first if stale."""
    record = await cache.get_current_rate()
    return JSONResponse(content=rate_to_dict(record))


@router.post("/admin/rates/override")
@router.post("/admin/rates/update", include_in_schema=False)
async def override_rate(
    body: RateOverrideBody,
    admin: Account = Depends(require_admin),
    cache: RateCache = Depends(get_rate_cache),
) -> JSONResponse:
    """Pin a manual rate until an explicit reset."""
    if not body.price.is_finite() or body.price <= 0:
        raise InvalidAmountError(f"Rate price must be positive, got {body.price}")
    record = await cache.set_override(
        price=body.price,
        change_24h=body.change_24h,
        high_24h=body.high_24h,
        low_24h=body.low_24h,
        volume_24h=body.volume_24h,
    )
    logger.info("rate_override_by_admin", admin_id=admin.id, price=str(record.price))
    return JSONResponse(content=rate_to_dict(record))


@router.post("/admin/rates/reset")
async def reset_rate(
    admin: Account = Depends(require_admin),
    cache: RateCache = Depends(get_rate_cache),
) -> JSONResponse:
    """Drop the override and fetch a live rate now. 503 if no source answers."""
    logger.info("rate_reset_requested", admin_id=admin.id)
    record = await cache.clear_override()
    return JSONResponse(content=rate_to_dict(record))
