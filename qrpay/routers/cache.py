from __future__ import annotations

from fastapi import APIRouter, Depends

from qrpay.models.payment import CacheStatsOut
from qrpay.routers.payments import get_session
from qrpay.services.session import PaymentSession

"""QR image cache maintenance endpoints.

    - GET    /cache/stats    -> hits, misses, byte estimate, entry count
    - DELETE /cache          -> drop every entry and reset counters
    - POST   /cache/preload  -> render the common rate x amount grid
"""

router = APIRouter(prefix="/cache", tags=["cache"])


@router.get("/stats", response_model=CacheStatsOut, summary="Cache statistics")
async def cache_stats(session: PaymentSession = Depends(get_session)):
    return CacheStatsOut(**session.statistics().as_dict())


@router.delete("", response_model=CacheStatsOut, summary="Clear the QR image cache")
async def clear_cache(session: PaymentSession = Depends(get_session)):
    session.clear_cache()
    return CacheStatsOut(**session.statistics().as_dict())


@router.post("/preload", summary="Pre-render common amounts for the current format")
async def preload(session: PaymentSession = Depends(get_session)):
    added = await session.preload_common()
    return {
        "status": "ok",
        "added": added,
        "stats": session.statistics().as_dict(),
    }
