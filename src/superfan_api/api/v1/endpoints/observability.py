from __future__ import annotations

from typing import Dict

from fastapi import APIRouter

from superfan_api.observability.economy import get_economy_store


router = APIRouter(prefix="/observability", tags=["observability"])


@router.get("/economy", summary="Points economy counters")
async def economy_snapshot() -> Dict[str, Dict[str, int]]:
    return get_economy_store().snapshot().as_dict()
