from fastapi import APIRouter
from pydantic import BaseModel
from typing import List

from livenotifier.metrics.registry import platforms_total
from livenotifier.scheduling.poller import PlatformPoller

router = APIRouter(prefix="/platforms", tags=["platforms"])

_pollers: List[PlatformPoller] = []

class PlatformInfo(BaseModel):
    platform: str
    method: str
    priority: int
    interval_sec: float
    backoff_sec: int
    live: bool

@router.get("", response_model=List[PlatformInfo])
async def list_platforms():
    out: List[PlatformInfo] = []
    for p in _pollers:
        out.append(PlatformInfo(
            platform=p.platform.value,
            method=p.method,
            priority=p.arbitrator.priority(p.platform),
            interval_sec=p.interval,
            backoff_sec=p.backoff.timeout,
            live=p.store.current_live(p.platform) is not None,
        ))
    platforms_total.set(len(out))
    return out

def set_pollers(pollers: List[PlatformPoller]):
    _pollers[:] = pollers
