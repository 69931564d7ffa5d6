from __future__ import annotations

from .types import CardDefinition, CardFilter


def _name_matches(card: CardDefinition, colors: tuple[str, ...], value: str) -> bool:
    v = value.lower().strip()
    if not v:
        return False
    candidates = [v]
    if v.endswith("s") and len(v) > 3:
        candidates.append(v[:-1])
    for c in candidates:
        if c in card.character.lower() or c in card.title.lower():
            return True
        if any(t.lower() == c for t in card.types):
            return True
        if any(c in g.lower() for g in card.groups):
            return True
        if c.upper() in colors:
            return True
    return False


def matches(card: CardDefinition, colors: tuple[str, ...], flt: CardFilter) -> bool:
    """Does `card` (currently showing `colors`) satisfy the filter?"""
    if flt.kind == "any":
        return True
    if flt.kind == "no_power":
        return not card.has_power
    if flt.kind == "points":
        return any(card.base_points == int(v) for v in flt.values)
    if flt.kind == "color":
        return any(v in colors for v in flt.values)
    return any(_name_matches(card, colors, v) for v in flt.values)


def neighbor_slots(position: int, board_slots: int) -> list[int]:
    return [i for i in (position - 1, position + 1) if 0 <= i < board_slots]
