from __future__ import annotations

import random
from collections.abc import Sequence

from .state import MatchConfig, SideState
from .types import CardCatalog, CardDefinition


def create_side_state(deck_ids: Sequence[int], rng: random.Random, config: MatchConfig | None = None) -> SideState:
    """Shuffle a validated deck and deal the opening hand.

    The last card of the shuffled order is kept as the (display only)
    bottom card; it also decides the side's main colour.
    """
    cfg = config or MatchConfig()
    if len(deck_ids) != cfg.deck_size:
        raise ValueError(f"Decks must be exactly {cfg.deck_size} cards.")
    if len(set(deck_ids)) != len(deck_ids):
        raise ValueError("Deck card ids must be distinct.")

    order = list(deck_ids)
    rng.shuffle(order)
    return SideState(
        hand=order[: cfg.starting_hand],
        deck=order[cfg.starting_hand :],
        board=[None for _ in range(cfg.board_slots)],
        bottom_card=order[-1] if order else None,
        original_deck=tuple(deck_ids),
    )


def refill_hand(side: SideState, config: MatchConfig | None = None) -> list[int]:
    cfg = config or MatchConfig()
    drawn = side.deck[: cfg.refill_count]
    del side.deck[: cfg.refill_count]
    side.hand.extend(drawn)
    return drawn


def pick_main_color(card: CardDefinition | None, config: MatchConfig | None = None) -> str | None:
    if card is None or not card.colors:
        return None
    cfg = config or MatchConfig()
    for color in card.colors:
        if color not in cfg.neutral_colors:
            return color
    return card.colors[0]


def create_ai_deck(cards: CardCatalog, rng: random.Random, config: MatchConfig | None = None) -> list[int]:
    """Random deck for the computer opponent, one card per character."""
    cfg = config or MatchConfig()
    pool = sorted(cards.all_ids())
    rng.shuffle(pool)
    seen: set[str] = set()
    deck: list[int] = []
    for card_id in pool:
        card = cards.get(card_id)
        if card.character in seen:
            continue
        seen.add(card.character)
        deck.append(card_id)
        if len(deck) == cfg.deck_size:
            return deck
    raise ValueError("Not enough distinct characters in the catalog for an AI deck.")
