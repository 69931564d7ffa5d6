from __future__ import annotations


class GameError(RuntimeError):
    """Base class for rule violations raised by the engine."""

    code = "game_error"


class PlacementError(GameError):
    """A placement action was rejected; the state is unchanged."""


class InvalidSlot(PlacementError):
    code = "invalid_slot"


class DuplicateCharacter(PlacementError):
    code = "duplicate_character"


class IncompletePlacement(PlacementError):
    code = "incomplete_placement"


class CardNotInHand(PlacementError):
    code = "card_not_in_hand"


class UnknownCard(GameError):
    code = "unknown_card"

    def __init__(self, card_id: object) -> None:
        super().__init__(f"Unknown card: {card_id}")
        self.card_id = card_id


class PeerBoardInvalid(GameError):
    """The synchronized peer board failed re-validation. Fatal for the match."""

    code = "peer_board_invalid"
