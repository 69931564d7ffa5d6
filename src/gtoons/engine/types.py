from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from .errors import UnknownCard

Side = Literal["player", "opponent"]
Phase = Literal["round1-place", "round2-place", "game-over"]
Winner = Literal["player", "opponent", "none"]
WinMethod = Literal["points", "color", "none"]
Rarity = Literal["common", "uncommon", "rare", "slam"]

COLORS: tuple[str, ...] = (
    "RED",
    "BLUE",
    "GREEN",
    "YELLOW",
    "ORANGE",
    "PURPLE",
    "PINK",
    "BLACK",
    "SILVER",
)

SIDES: tuple[Side, Side] = ("player", "opponent")


def other_side(side: Side) -> Side:
    return "opponent" if side == "player" else "player"


FilterKind = Literal["any", "name", "color", "points", "no_power"]


@dataclass(frozen=True)
class CardFilter:
    """Which cards an effect looks at.

    `values` holds alternatives ("clone or droid" -> ("clone", "droid")).
    `other` excludes the card carrying the effect.
    """

    kind: FilterKind
    values: tuple[str, ...] = ()
    other: bool = False


ANY_CARD = CardFilter(kind="any")

ConditionKind = Literal[
    "in_play",
    "all_in_play",
    "any_in_play",
    "next_to",
    "round2",
    "first_slot",
    "last_slot",
    "opposite_is",
    "opposite_higher",
    "opposite_lower",
    "opposite_same_color",
    "opposite_different_color",
]
ConditionScope = Literal["all", "own", "opponent"]


@dataclass(frozen=True)
class Condition:
    kind: ConditionKind
    filters: tuple[CardFilter, ...] = ()
    scope: ConditionScope = "all"


@dataclass(frozen=True)
class NoPowerEffect:
    type: Literal["no_power"]


@dataclass(frozen=True)
class ConditionalBonusEffect:
    type: Literal["conditional"]
    amount: int
    condition: Condition


@dataclass(frozen=True)
class MultiplierEffect:
    type: Literal["multiplier"]
    factor: int
    condition: Condition


CountScope = Literal["all", "own", "opponent", "neighbors"]


@dataclass(frozen=True)
class CountEffect:
    type: Literal["count"]
    amount: int
    filter: CardFilter
    scope: CountScope


BuffScope = Literal["own", "neighbors"]


@dataclass(frozen=True)
class BuffEffect:
    type: Literal["buff"]
    amount: int
    filter: CardFilter
    scope: BuffScope
    factor: int = 1
    condition: Condition | None = None


DebuffScope = Literal["opposite", "opponent", "all", "neighbors_and_opposite"]


@dataclass(frozen=True)
class DebuffEffect:
    type: Literal["debuff"]
    amount: int
    filter: CardFilter
    scope: DebuffScope
    exempt: CardFilter | None = None


@dataclass(frozen=True)
class StealEffect:
    type: Literal["steal"]
    amount: int
    scope: Literal["opposite", "opponent"]


SwapMode = Literal["neighbor_points", "copy_base", "mirror"]


@dataclass(frozen=True)
class SwapEffect:
    type: Literal["swap"]
    mode: SwapMode
    filter: CardFilter = ANY_CARD


PositionWhere = Literal["corner", "center", "adjacent_filled", "slot"]


@dataclass(frozen=True)
class PositionEffect:
    type: Literal["position"]
    amount: int
    where: PositionWhere
    slot: int | None = None


@dataclass(frozen=True)
class UnderdogEffect:
    type: Literal["underdog"]
    mode: Literal["behind", "only_card"]
    amount: int = 0
    factor: int = 1


@dataclass(frozen=True)
class RandomEffect:
    """Uniform draw from `outcomes` (a range, a die or a coin)."""

    type: Literal["random"]
    outcomes: tuple[int, ...]


ChainMode = Literal["per_triggered", "per_negative", "double_neighbors", "double_left", "double_right"]


@dataclass(frozen=True)
class ChainEffect:
    type: Literal["chain"]
    mode: ChainMode
    amount: int = 0


ColorMode = Literal["all_colors", "convert", "change_condition"]


@dataclass(frozen=True)
class ColorEffect:
    type: Literal["color"]
    mode: ColorMode
    color_from: str | None = None
    color_to: str | None = None


@dataclass(frozen=True)
class ResourceEffect:
    type: Literal["resource"]
    amount: int
    whose: Literal["own", "opponent"]


@dataclass(frozen=True)
class CancelEffect:
    type: Literal["cancel"]
    target: Literal["opposite", "random"]
    filter: CardFilter | None = None


@dataclass(frozen=True)
class ShieldEffect:
    type: Literal["shield"]
    cancel: bool
    negative: bool = False


Effect = (
    NoPowerEffect
    | ConditionalBonusEffect
    | MultiplierEffect
    | CountEffect
    | BuffEffect
    | DebuffEffect
    | StealEffect
    | SwapEffect
    | PositionEffect
    | UnderdogEffect
    | RandomEffect
    | ChainEffect
    | ColorEffect
    | ResourceEffect
    | CancelEffect
    | ShieldEffect
)


@dataclass(frozen=True)
class CardDefinition:
    id: int
    title: str
    character: str
    base_points: int
    colors: tuple[str, ...]
    rarity: Rarity
    description: str
    groups: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    effects: tuple[Effect, ...] = ()

    @property
    def has_power(self) -> bool:
        return any(not isinstance(e, NoPowerEffect) for e in self.effects)

    @property
    def cancel_immune(self) -> bool:
        return any(isinstance(e, ShieldEffect) and e.cancel for e in self.effects)

    @property
    def negative_immune(self) -> bool:
        return any(isinstance(e, ShieldEffect) and e.negative for e in self.effects)


@dataclass(frozen=True)
class CardCatalog:
    """Immutable card catalog used by the engine."""

    cards: dict[int, CardDefinition]

    def lookup(self, card_id: int) -> CardDefinition | None:
        return self.cards.get(card_id)

    def get(self, card_id: int) -> CardDefinition:
        card = self.cards.get(card_id)
        if card is None:
            raise UnknownCard(card_id)
        return card

    def all_ids(self) -> Sequence[int]:
        return list(self.cards.keys())
