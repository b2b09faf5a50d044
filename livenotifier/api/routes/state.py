from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Dict, List, Optional

from livenotifier.storage.state import StateStore

router = APIRouter(prefix="/state", tags=["state"])

_store: StateStore | None = None

class StateView(BaseModel):
    change_cursor: Dict[str, str]
    published_ids: List[str]
    current_live: Dict[str, Optional[Dict[str, str]]]

@router.get("", response_model=StateView)
async def get_state():
    if _store is None:
        raise HTTPException(503, "State store not available")
    state = _store.state
    return StateView(
        change_cursor=dict(state.change_cursor),
        published_ids=list(state.published_ids),
        current_live={p: (job.to_dict() if job else None) for p, job in state.current_live.items()},
    )

def set_store(store: StateStore):
    global _store
    _store = store
