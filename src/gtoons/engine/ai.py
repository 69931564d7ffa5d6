from __future__ import annotations

from dataclasses import dataclass

from .placement import board_characters, legal_slots, place_card
from .state import GameState
from .types import CardDefinition, Side


@dataclass(frozen=True)
class AISpec:
    """Simple AI tuning parameters.

    difficulty:
      0 = easy (any legal card, picked with the match RNG)
      1 = normal (highest base points first)

    prefer_main_color: rank cards showing the side's main colour ahead of
    the rest before comparing points.
    """

    difficulty: int = 1
    prefer_main_color: bool = False


def _rank(state: GameState, side: Side, spec: AISpec, hand_index: int, card: CardDefinition) -> tuple[int, int, int]:
    main = state.main_colors.get(side)
    off_color = 0
    if spec.prefer_main_color and main is not None and main not in card.colors:
        off_color = 1
    # earlier in hand = drawn longer ago
    return (off_color, -card.base_points, hand_index)


def ai_place_cards(
    state: GameState,
    count: int,
    start_slot: int,
    spec: AISpec | None = None,
    side: Side = "opponent",
) -> list[int]:
    """Fill up to `count` empty slots from `start_slot` for the AI side.

    Only legal choices are ever considered, so this never raises a placement
    error. Returns the slots that were filled.
    """
    spec = spec or AISpec()
    ss = state.side(side)
    legal = legal_slots(state)
    filled: list[int] = []

    for slot in range(start_slot, start_slot + count):
        if slot not in legal or ss.board[slot] is not None:
            continue
        used = board_characters(state.cards, ss.board)
        choices: list[tuple[int, CardDefinition]] = []
        for i, card_id in enumerate(ss.hand):
            card = state.cards.lookup(card_id)
            if card is None or card.character in used:
                continue
            choices.append((i, card))
        if not choices:
            break

        if spec.difficulty <= 0:
            _, pick = state.rng.choice(choices)
        else:
            _, pick = min(choices, key=lambda c: _rank(state, side, spec, c[0], c[1]))
        place_card(state, side, pick.id, slot)
        filled.append(slot)

    return filled
