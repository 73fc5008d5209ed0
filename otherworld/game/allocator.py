"""Starting attribute allocation.

The player spends INITIAL_POINTS plus the inherited bonus on top of a free
baseline. Edits that would overspend are silently ignored: this is a UI
constraint, not an error, so callers just observe unchanged state.
"""

import logging

from otherworld.models import ATTRIBUTE_KEYS, Attributes

logger = logging.getLogger(__name__)

INITIAL_POINTS = 20
MAX_ATTRIBUTE = 10

BASELINE_ATTRIBUTES = Attributes(essence=1, qi=0, spirit=1, root_bone=1, merit=1)


class Allocator:
    def __init__(self, bonus_points: int = 0) -> None:
        self.bonus_points = bonus_points
        self.attributes = BASELINE_ATTRIBUTES.model_copy()
        self.remaining = INITIAL_POINTS + bonus_points

    @property
    def can_start(self) -> bool:
        return self.remaining == 0

    def set_attribute(self, key: str, value: int) -> bool:
        """Try to set one attribute. Returns False (and changes nothing) if rejected."""
        if key not in ATTRIBUTE_KEYS:
            raise KeyError(f"Unknown attribute {key!r}")
        if not 0 <= value <= MAX_ATTRIBUTE:
            return False
        diff = value - getattr(self.attributes, key)
        if self.remaining - diff < 0:
            logger.debug("allocation rejected key=%s value=%d remaining=%d", key, value, self.remaining)
            return False
        setattr(self.attributes, key, value)
        self.remaining -= diff
        return True

    def increase(self, key: str) -> bool:
        current = getattr(self.attributes, key)
        if self.remaining <= 0 or current >= MAX_ATTRIBUTE:
            return False
        return self.set_attribute(key, current + 1)

    def decrease(self, key: str) -> bool:
        current = getattr(self.attributes, key)
        if current <= 0:
            return False
        return self.set_attribute(key, current - 1)
