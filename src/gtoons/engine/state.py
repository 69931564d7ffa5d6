from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .types import CardCatalog, Phase, Side, WinMethod, Winner

if TYPE_CHECKING:
    from .ai import AISpec

Event = dict[str, object]


@dataclass(frozen=True)
class MatchConfig:
    deck_size: int = 12
    starting_hand: int = 4
    refill_count: int = 3
    board_slots: int = 7
    # (first slot, end slot) per round
    round_slots: tuple[tuple[int, int], ...] = ((0, 4), (4, 7))
    chain_iterations: int = 3
    # Same character on both boards cancels both copies.
    character_clash: bool = False
    # Colours skipped when picking a side's main colour from its bottom card.
    neutral_colors: tuple[str, ...] = ("SILVER", "BLACK")

    def slots_for_round(self, round_no: int) -> range:
        start, end = self.round_slots[round_no - 1]
        return range(start, end)

    def required_for_round(self, round_no: int) -> int:
        return len(self.slots_for_round(round_no))


@dataclass
class PlacedCard:
    card_id: int
    position: int
    modified_points: int
    cancelled: bool = False
    # Resolution bookkeeping, rewritten on every resolution pass.
    triggered: bool = False
    fired_cancel: bool = False
    negative_hits: int = 0
    effective_colors: tuple[str, ...] = ()


@dataclass
class SideState:
    hand: list[int]
    deck: list[int]
    board: list[PlacedCard | None]
    bottom_card: int | None
    original_deck: tuple[int, ...] = ()
    color_counts: dict[str, int] = field(default_factory=dict)
    total_points: int = 0
    ready: bool = False

    def placed(self) -> list[PlacedCard]:
        return [pc for pc in self.board if pc is not None]


@dataclass
class GameState:
    cards: CardCatalog
    config: MatchConfig
    seed: int | str
    rng: random.Random
    player: SideState
    opponent: SideState
    main_colors: dict[Side, str]
    phase: Phase = "round1-place"
    # Colour each side is judged on after colour effects; starts as main_colors.
    color_conditions: dict[Side, str] = field(default_factory=dict)
    winner: Winner | None = None
    win_method: WinMethod | None = None
    # Set for single player: the opponent board is filled by the AI.
    ai: AISpec | None = None
    action_log: list[object] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)

    def side(self, side: Side) -> SideState:
        return self.player if side == "player" else self.opponent

    @property
    def round_no(self) -> int:
        return 1 if self.phase == "round1-place" else 2
