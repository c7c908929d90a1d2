"""
Name matching between recipe ingredients and fridge lots.

Fridge and shopping data are linked by free-text food names, not ids.
The matcher decides which names count as "the same food"; swapping it
changes matching everywhere without touching callers.
"""

from typing import Iterable, Protocol

from kondate.models.fridge import DraftFridgeState, FridgeState


class NameMatcher(Protocol):
    """Turns a free-text food name into a comparison key."""

    def key(self, name: str) -> str:
        ...


class CaseFoldMatcher:
    """Exact match after trimming and case folding."""

    def key(self, name: str) -> str:
        return str(name or "").strip().casefold()


class FridgeIndex:
    """Best stock state per food name key."""

    def __init__(self, matcher: NameMatcher):
        self.matcher = matcher
        self._states: dict[str, FridgeState] = {}

    @classmethod
    def build(cls, lots: Iterable, matcher: NameMatcher) -> "FridgeIndex":
        """
        Index lots (FridgeLot models or raw rows) by name key.

        When several lots share a name the highest state wins
        (NONE < FEW < HAVE). Lots without a state count as HAVE.
        """
        index = cls(matcher)
        for lot in lots:
            if isinstance(lot, dict):
                name = lot.get("food_name_snapshot")
                state = lot.get("state")
            else:
                name = lot.food_name_snapshot
                state = lot.state
            index.add(name, state)
        return index

    def add(self, name: str, state) -> None:
        key = self.matcher.key(name)
        if not key:
            return
        state = FridgeState(state) if state else FridgeState.HAVE
        prev = self._states.get(key)
        if prev is None or state.rank > prev.rank:
            self._states[key] = state

    def state_for(self, name: str) -> DraftFridgeState:
        key = self.matcher.key(name)
        state = self._states.get(key) if key else None
        if state is None:
            return DraftFridgeState.UNKNOWN
        return DraftFridgeState(state.value)

    def __len__(self) -> int:
        return len(self._states)
