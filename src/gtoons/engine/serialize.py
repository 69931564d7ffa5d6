from __future__ import annotations

from collections.abc import Mapping, Sequence

from .actions import Action, ConfirmPlacementAction, PlaceCardAction
from .errors import PeerBoardInvalid
from .state import GameState, PlacedCard, SideState
from .types import SIDES, Side


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, PlaceCardAction):
        return {"type": "place", "side": a.side, "card_id": a.card_id, "slot": a.slot}
    if isinstance(a, ConfirmPlacementAction):
        return {"type": "confirm", "side": a.side}
    # should be unreachable
    return {"type": "unknown"}


def _placed_to_dict(pc: PlacedCard | None) -> dict[str, object] | None:
    if pc is None:
        return None
    return {
        "card_id": pc.card_id,
        "position": pc.position,
        "modified_points": pc.modified_points,
        "cancelled": pc.cancelled,
        "colors": list(pc.effective_colors),
    }


def _side_to_dict(ss: SideState) -> dict[str, object]:
    return {
        "hand": list(ss.hand),
        "deck": list(ss.deck),
        "board": [_placed_to_dict(pc) for pc in ss.board],
        "bottom_card": ss.bottom_card,
        "total_points": ss.total_points,
        "color_counts": dict(sorted(ss.color_counts.items())),
        "ready": ss.ready,
    }


def snapshot(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current match state."""
    return {
        "seed": state.seed,
        "phase": state.phase,
        "winner": state.winner,
        "win_method": state.win_method,
        "main_colors": dict(sorted(state.main_colors.items())),
        "color_conditions": dict(sorted(state.color_conditions.items())),
        "sides": {side: _side_to_dict(state.side(side)) for side in SIDES},
        "action_log": [action_to_dict(a) for a in state.action_log if isinstance(a, (PlaceCardAction, ConfirmPlacementAction))],
    }


# Wire format ------------------------------------------------------------
#
# Only placements cross the wire. Points, cancellations and effect outcomes
# are recomputed by each client from the shared seed.


def board_to_wire(state: GameState, side: Side) -> dict[str, object]:
    ss = state.side(side)
    return {
        "side": side,
        "round": state.round_no,
        "ready": ss.ready,
        "bottom_card": ss.bottom_card,
        "board": [None if pc is None else {"card_id": pc.card_id, "position": pc.position} for pc in ss.board],
    }


def board_from_wire(payload: Mapping[str, object]) -> list[PlacedCard | None]:
    """Rebuild a peer board from a wire payload.

    Raises PeerBoardInvalid on malformed payloads. Rule checks (slots,
    characters) are left to `validate_board`.
    """
    raw = payload.get("board")
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        raise PeerBoardInvalid("Payload board must be a list.")

    board: list[PlacedCard | None] = []
    for item in raw:
        if item is None:
            board.append(None)
            continue
        if not isinstance(item, Mapping):
            raise PeerBoardInvalid("Board entries must be objects or null.")
        card_id = item.get("card_id")
        position = item.get("position")
        # bool is an int subclass
        if not isinstance(card_id, int) or isinstance(card_id, bool):
            raise PeerBoardInvalid("card_id must be an integer.")
        if not isinstance(position, int) or isinstance(position, bool):
            raise PeerBoardInvalid("position must be an integer.")
        # points are recomputed locally; never trust the sender's
        board.append(PlacedCard(card_id=card_id, position=position, modified_points=0))
    return board
