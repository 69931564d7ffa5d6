from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .actions import Action, ConfirmPlacementAction, PlaceCardAction
from .ai import AISpec, ai_place_cards
from .cancellation import resolve_cancellations
from .deck import create_ai_deck, create_side_state, pick_main_color, refill_hand
from .errors import GameError, PeerBoardInvalid
from .placement import check_complete, legal_slots, place_card, validate_board
from .resolver import apply_effects
from .rolls import SeededRolls
from .scoring import calculate_scores, determine_winner
from .state import Event, GameState, MatchConfig, PlacedCard, SideState
from .types import SIDES, CardCatalog, Side


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None
    code: str | None = None


def _main_colors(state: GameState) -> dict[Side, str]:
    colors: dict[Side, str] = {}
    for side in SIDES:
        bottom = state.side(side).bottom_card
        card = state.cards.lookup(bottom) if bottom is not None else None
        color = pick_main_color(card, state.config)
        if color is not None:
            colors[side] = color
    return colors


def _ai_turn(state: GameState) -> None:
    if state.ai is None or state.phase == "game-over":
        return
    slots = legal_slots(state)
    filled = ai_place_cards(state, len(slots), slots[0], state.ai)
    state.opponent.ready = True
    state.event_log.append({"type": "SIDE_READY", "side": "opponent", "slots": filled})


def resolve_round(state: GameState, rolls: SeededRolls | None = None) -> list[Event]:
    """Reveal the current round: re-validate, cancel, apply effects, score.

    Round 1 then refills both hands and opens round 2; round 2 decides the
    winner and ends the game.
    """
    mark = len(state.event_log)
    round_no = state.round_no
    for side in SIDES:
        validate_board(state.cards, state.side(side).board, round_no, state.config)

    rolls = rolls or SeededRolls(state.seed)
    resolve_cancellations(state, state.config.slots_for_round(round_no), rolls)
    apply_effects(state, rolls)
    calculate_scores(state)
    state.event_log.append(
        {
            "type": "ROUND_RESOLVED",
            "round": round_no,
            "player_points": state.player.total_points,
            "opponent_points": state.opponent.total_points,
        }
    )
    for side in SIDES:
        state.side(side).ready = False

    if round_no == 1:
        for side in SIDES:
            refill_hand(state.side(side), state.config)
        state.phase = "round2-place"
        _ai_turn(state)
    else:
        determine_winner(state)
        state.phase = "game-over"
    return state.event_log[mark:]


def confirm_placement(state: GameState, side: Side = "player") -> bool:
    """Lock in `side`'s placements for the round.

    Returns True when this was the second side to confirm and the round was
    resolved.
    """
    if state.phase == "game-over":
        raise GameError("Match already ended.")
    check_complete(state, side)
    state.side(side).ready = True
    state.event_log.append({"type": "SIDE_READY", "side": side})
    if all(state.side(s).ready for s in SIDES):
        resolve_round(state)
        return True
    return False


def receive_peer_board(
    state: GameState,
    side: Side,
    board: Sequence[PlacedCard | None],
    ready: bool = True,
    bottom_card: int | None = None,
) -> bool:
    """Adopt the board the peer submitted for the current round.

    The board is untrusted: it is re-validated and must keep the earlier
    rounds' cards where they were. Raises PeerBoardInvalid otherwise.
    """
    if state.phase == "game-over":
        raise GameError("Match already ended.")
    round_no = state.round_no
    validate_board(state.cards, board, round_no, state.config)

    ss = state.side(side)
    current = set(state.config.slots_for_round(round_no))
    merged: list[PlacedCard | None] = []
    for i, incoming in enumerate(board):
        if i in current:
            merged.append(incoming)
            continue
        existing = ss.board[i]
        if existing is None:
            merged.append(incoming)
        elif incoming is None or incoming.card_id != existing.card_id:
            raise PeerBoardInvalid(f"Peer changed slot {i} from an earlier round.")
        else:
            merged.append(existing)

    ss.board = merged
    ss.ready = ready
    if bottom_card is not None and ss.bottom_card is None:
        ss.bottom_card = bottom_card
        state.main_colors = _main_colors(state)
        state.color_conditions = dict(state.main_colors)
    state.event_log.append({"type": "PEER_BOARD", "side": side, "round": round_no, "ready": ready})
    if ready and all(state.side(s).ready for s in SIDES):
        resolve_round(state)
        return True
    return False


def step(state: GameState, action: Action) -> StepResult:
    """Apply a single action to the match state.

    This mutates `state` in-place but remains deterministic for a given
    (seed, initial decks, action sequence).
    """
    if state.phase == "game-over":
        return StepResult(ok=False, events=[], error="Match already ended.")

    mark = len(state.event_log)
    try:
        if isinstance(action, PlaceCardAction):
            place_card(state, action.side, action.card_id, action.slot)
        elif isinstance(action, ConfirmPlacementAction):
            confirm_placement(state, action.side)
        else:
            return StepResult(ok=False, events=[], error="Unknown action.")
    except PeerBoardInvalid:
        raise
    except GameError as e:
        return StepResult(ok=False, events=[], error=str(e), code=e.code)
    # only accepted actions are logged for replay
    state.action_log.append(action)
    return StepResult(ok=True, events=state.event_log[mark:])


def new_match(
    cards: CardCatalog,
    player_deck: Sequence[int],
    opponent_deck: Sequence[int] | None,
    seed: int | str,
    config: MatchConfig | None = None,
    ai: AISpec | None = None,
) -> GameState:
    """Start a match. With `ai` set the opponent board is placed automatically.

    A missing `opponent_deck` gets a random AI deck drawn from the catalog.
    """
    cfg = config or MatchConfig()
    rng = random.Random(seed)
    if opponent_deck is None:
        opponent_deck = create_ai_deck(cards, rng, cfg)

    state = GameState(
        cards=cards,
        config=cfg,
        seed=seed,
        rng=rng,
        player=create_side_state(player_deck, rng, cfg),
        opponent=create_side_state(opponent_deck, rng, cfg),
        main_colors={},
        ai=ai,
    )
    state.main_colors = _main_colors(state)
    state.color_conditions = dict(state.main_colors)
    state.event_log.append({"type": "MATCH_STARTED", "seed": seed, "main_colors": dict(state.main_colors)})
    _ai_turn(state)
    return state


def replay(
    cards: CardCatalog,
    player_deck: Sequence[int],
    opponent_deck: Sequence[int] | None,
    seed: int | str,
    actions: Iterable[Action],
    config: MatchConfig | None = None,
    ai: AISpec | None = None,
) -> GameState:
    state = new_match(cards, player_deck, opponent_deck, seed=seed, config=config, ai=ai)
    for a in actions:
        step(state, a)
        if state.phase == "game-over":
            break
    return state


def new_pvp_match(
    cards: CardCatalog,
    local_side: Side,
    local_deck: Sequence[int],
    seed: int | str,
    config: MatchConfig | None = None,
) -> GameState:
    """Start one client's view of a two-player match.

    Both clients hold the match in the same orientation (host is "player")
    and share the seed, so both resolve every round identically. Only the
    local side's hand and deck are known; the peer side is filled from the
    boards it submits.
    """
    cfg = config or MatchConfig()
    rng = random.Random(seed)
    local = create_side_state(local_deck, rng, cfg)
    peer = SideState(hand=[], deck=[], board=[None for _ in range(cfg.board_slots)], bottom_card=None)
    player, opponent = (local, peer) if local_side == "player" else (peer, local)

    state = GameState(cards=cards, config=cfg, seed=seed, rng=rng, player=player, opponent=opponent, main_colors={})
    state.main_colors = _main_colors(state)
    state.color_conditions = dict(state.main_colors)
    state.event_log.append({"type": "MATCH_STARTED", "seed": seed, "local_side": local_side})
    return state
