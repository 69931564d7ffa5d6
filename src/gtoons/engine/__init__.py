"""Deterministic, headless rules engine for gTOONS.

IMPORTANT: This package must never import a UI or do any I/O.
"""

from .actions import ConfirmPlacementAction, PlaceCardAction
from .ai import AISpec, ai_place_cards
from .errors import (
    CardNotInHand,
    DuplicateCharacter,
    GameError,
    IncompletePlacement,
    InvalidSlot,
    PeerBoardInvalid,
    PlacementError,
    UnknownCard,
)
from .match import (
    StepResult,
    confirm_placement,
    new_match,
    new_pvp_match,
    receive_peer_board,
    replay,
    resolve_round,
    step,
)
from .state import GameState, MatchConfig, PlacedCard, SideState
from .types import CardCatalog, CardDefinition, Rarity

__all__ = [
    "AISpec",
    "CardCatalog",
    "CardDefinition",
    "CardNotInHand",
    "ConfirmPlacementAction",
    "DuplicateCharacter",
    "GameError",
    "GameState",
    "IncompletePlacement",
    "InvalidSlot",
    "MatchConfig",
    "PeerBoardInvalid",
    "PlaceCardAction",
    "PlacedCard",
    "PlacementError",
    "Rarity",
    "SideState",
    "StepResult",
    "UnknownCard",
    "ai_place_cards",
    "confirm_placement",
    "new_match",
    "new_pvp_match",
    "receive_peer_board",
    "replay",
    "resolve_round",
    "step",
]
