from __future__ import annotations

from collections.abc import Iterable

from .matching import matches
from .rolls import SeededRolls
from .state import Event, GameState, PlacedCard
from .types import SIDES, CancelEffect, Side, other_side


def _cancel(state: GameState, side: Side, target: PlacedCard, source: str, events: list[Event]) -> bool:
    card = state.cards.lookup(target.card_id)
    if card is not None and card.cancel_immune:
        events.append(
            {"type": "CANCEL_BLOCKED", "side": side, "slot": target.position, "card_id": target.card_id, "source": source}
        )
        return False
    target.cancelled = True
    events.append(
        {"type": "CARD_CANCELLED", "side": side, "slot": target.position, "card_id": target.card_id, "source": source}
    )
    return True


def resolve_cancellations(
    state: GameState, slots: Iterable[int], rolls: SeededRolls | None = None
) -> list[Event]:
    """Apply the cancellation effects of the cards revealed in `slots`.

    Sources are evaluated by ascending slot, player before opponent on the
    same slot. A card cancelled earlier in that order no longer fires.
    """
    rolls = rolls or SeededRolls(state.seed)
    events: list[Event] = []

    for index in sorted(slots):
        for side in SIDES:
            pc = state.side(side).board[index]
            if pc is None or pc.cancelled:
                continue
            card = state.cards.lookup(pc.card_id)
            if card is None:
                continue
            enemy = other_side(side)
            enemy_board = state.side(enemy).board
            for eff_idx, eff in enumerate(card.effects):
                if not isinstance(eff, CancelEffect):
                    continue
                if eff.target == "opposite":
                    target = enemy_board[index]
                else:
                    candidates = [c for c in enemy_board if c is not None and not c.cancelled]
                    target = rolls.choice(candidates, side, index, eff_idx, "cancel") if candidates else None
                if target is None or target.cancelled:
                    continue
                if eff.filter is not None:
                    tdef = state.cards.lookup(target.card_id)
                    if tdef is None or not matches(tdef, tdef.colors, eff.filter):
                        continue
                pc.fired_cancel = True
                _cancel(state, enemy, target, f"{side}:{index}", events)

    if state.config.character_clash:
        events.extend(_character_clash(state))

    state.event_log.extend(events)
    return events


def _character_clash(state: GameState) -> list[Event]:
    """Cancel every card whose character is also on the other board."""
    by_char: dict[Side, dict[str, list[PlacedCard]]] = {side: {} for side in SIDES}
    for side in SIDES:
        for pc in state.side(side).placed():
            if pc.cancelled:
                continue
            card = state.cards.lookup(pc.card_id)
            if card is None:
                continue
            by_char[side].setdefault(card.character, []).append(pc)

    events: list[Event] = []
    shared = sorted(set(by_char["player"]) & set(by_char["opponent"]))
    for character in shared:
        for side in SIDES:
            for pc in by_char[side][character]:
                _cancel(state, side, pc, "clash", events)
    return events
