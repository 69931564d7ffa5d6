from __future__ import annotations

from dataclasses import dataclass

from .types import Side


@dataclass(frozen=True)
class PlaceCardAction:
    side: Side
    card_id: int
    slot: int


@dataclass(frozen=True)
class ConfirmPlacementAction:
    side: Side


Action = PlaceCardAction | ConfirmPlacementAction
