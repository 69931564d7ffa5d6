from __future__ import annotations

from .state import Event, GameState, SideState
from .types import SIDES, Side


def _score_side(ss: SideState) -> None:
    total = 0
    counts: dict[str, int] = {}
    for pc in ss.placed():
        if pc.cancelled:
            continue
        total += pc.modified_points
        for color in pc.effective_colors:
            counts[color] = counts.get(color, 0) + 1
    ss.total_points = total
    ss.color_counts = counts


def calculate_scores(state: GameState) -> None:
    for side in SIDES:
        _score_side(state.side(side))


def color_matches(state: GameState, side: Side) -> int:
    conditions = state.color_conditions or state.main_colors
    color = conditions.get(side)
    if color is None:
        return 0
    return state.side(side).color_counts.get(color, 0)


def determine_winner(state: GameState) -> Event:
    """Classify the result from the current totals.

    More points wins outright; level points go to the side with more cards of
    its own main colour; otherwise the game is drawn.
    """
    p = state.player.total_points
    o = state.opponent.total_points
    if p != o:
        state.winner = "player" if p > o else "opponent"
        state.win_method = "points"
    else:
        pc = color_matches(state, "player")
        oc = color_matches(state, "opponent")
        if pc != oc:
            state.winner = "player" if pc > oc else "opponent"
            state.win_method = "color"
        else:
            state.winner = "none"
            state.win_method = "none"

    event: Event = {
        "type": "GAME_ENDED",
        "winner": state.winner,
        "method": state.win_method,
        "player_points": p,
        "opponent_points": o,
    }
    state.event_log.append(event)
    return event
