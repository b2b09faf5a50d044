from typing import Dict

from livenotifier.platforms.models import PlatformID
from livenotifier.storage.state import StateStore


class PriorityArbitrator:
    """Lets the lowest-numbered live platform win when a broadcast is simulcast.

    Priority 0 means unranked and 1 means top priority: both always publish.
    A platform with priority N >= 2 is denied while any other ranked platform
    with a priority below N is currently live. Callers must hold
    ``StateStore.lock`` so the scan and the publish decision are atomic.
    """

    def __init__(self, store: StateStore, priorities: Dict[PlatformID, int]):
        self.store = store
        self.priorities = dict(priorities)

    def priority(self, platform: PlatformID) -> int:
        return self.priorities.get(platform, 0)

    def allowed(self, platform: PlatformID) -> bool:
        priority = self.priority(platform)
        if priority <= 1:
            return True
        for other, other_priority in self.priorities.items():
            if other is platform:
                continue
            if 1 <= other_priority < priority and self.store.current_live(other) is not None:
                return False
        return True
