from __future__ import annotations

from collections.abc import Sequence

from .errors import CardNotInHand, DuplicateCharacter, IncompletePlacement, InvalidSlot, PeerBoardInvalid
from .state import GameState, MatchConfig, PlacedCard
from .types import CardCatalog, Side


def legal_slots(state: GameState) -> range:
    if state.phase == "game-over":
        return range(0)
    return state.config.slots_for_round(state.round_no)


def board_characters(cards: CardCatalog, board: Sequence[PlacedCard | None]) -> set[str]:
    chars: set[str] = set()
    for pc in board:
        if pc is None:
            continue
        card = cards.lookup(pc.card_id)
        if card is not None:
            chars.add(card.character)
    return chars


def place_card(state: GameState, side: Side, hand_card_id: int, slot: int) -> PlacedCard:
    """Move a card from `side`'s hand onto its board.

    Raises a PlacementError and leaves the state untouched
    when the move is illegal.
    """
    ss = state.side(side)
    if slot not in legal_slots(state):
        raise InvalidSlot(f"Slot {slot} is not playable in {state.phase}.")
    if ss.board[slot] is not None:
        raise InvalidSlot(f"Slot {slot} is already occupied.")
    if hand_card_id not in ss.hand:
        raise CardNotInHand(f"Card {hand_card_id} is not in the {side} hand.")
    card = state.cards.get(hand_card_id)
    if card.character in board_characters(state.cards, ss.board):
        raise DuplicateCharacter(f"{card.character} is already on the board.")

    pc = PlacedCard(
        card_id=hand_card_id,
        position=slot,
        modified_points=card.base_points,
        effective_colors=card.colors,
    )
    ss.hand.remove(hand_card_id)
    ss.board[slot] = pc
    state.event_log.append({"type": "CARD_PLACED", "side": side, "slot": slot, "card_id": hand_card_id})
    return pc


def placed_this_round(state: GameState, side: Side) -> int:
    board = state.side(side).board
    return sum(1 for i in legal_slots(state) if board[i] is not None)


def check_complete(state: GameState, side: Side) -> None:
    required = len(legal_slots(state))
    placed = placed_this_round(state, side)
    if placed < required:
        raise IncompletePlacement(f"Place {required} cards ({placed} placed).")


def validate_board(
    cards: CardCatalog,
    board: Sequence[PlacedCard | None],
    rounds_played: int,
    config: MatchConfig | None = None,
) -> None:
    """Re-validate a board received from the peer.

    The board must fill exactly the slots of the rounds played so far and
    never repeat a character.
    """
    cfg = config or MatchConfig()
    if len(board) != cfg.board_slots:
        raise PeerBoardInvalid(f"Board must have {cfg.board_slots} slots, got {len(board)}.")

    expected: set[int] = set()
    for round_no in range(1, rounds_played + 1):
        expected.update(cfg.slots_for_round(round_no))

    seen: set[str] = set()
    for i, pc in enumerate(board):
        if pc is None:
            if i in expected:
                raise PeerBoardInvalid(f"Slot {i} must be occupied.")
            continue
        if i not in expected:
            raise PeerBoardInvalid(f"Slot {i} cannot be occupied yet.")
        if pc.position != i:
            raise PeerBoardInvalid(f"Card in slot {i} claims position {pc.position}.")
        card = cards.lookup(pc.card_id)
        if card is None:
            # catalog misses are skipped at resolution time, not rejected
            continue
        if card.character in seen:
            raise PeerBoardInvalid(f"Duplicate character {card.character}.")
        seen.add(card.character)
