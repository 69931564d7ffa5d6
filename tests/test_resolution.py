from __future__ import annotations

import random
from collections.abc import Sequence

from gtoons.engine.cancellation import resolve_cancellations
from gtoons.engine.effects import parse_effects
from gtoons.engine.match import resolve_round
from gtoons.engine.resolver import apply_effects
from gtoons.engine.rolls import SeededRolls
from gtoons.engine.scoring import calculate_scores, determine_winner
from gtoons.engine.state import GameState, MatchConfig, PlacedCard, SideState
from gtoons.engine.types import COLORS, CardCatalog, CardDefinition

NO_POWER = "No power"


def _card(
    card_id: int,
    text: str = NO_POWER,
    points: int = 5,
    colors: tuple[str, ...] = ("RED",),
    types: tuple[str, ...] = (),
) -> CardDefinition:
    return CardDefinition(
        id=card_id,
        title=f"Card {card_id}",
        character=f"Character {card_id}",
        base_points=points,
        colors=colors,
        rarity="common",
        description=text,
        types=types,
        effects=parse_effects(text),
    )


def _board(ids: Sequence[int | None], slots: int = 7) -> list[PlacedCard | None]:
    board: list[PlacedCard | None] = [None] * slots
    for i, card_id in enumerate(ids):
        if card_id is not None:
            board[i] = PlacedCard(card_id=card_id, position=i, modified_points=0)
    return board


def _state(
    cards: Sequence[CardDefinition],
    player: Sequence[int | None],
    opponent: Sequence[int | None],
    seed: int = 1,
    config: MatchConfig | None = None,
) -> GameState:
    cfg = config or MatchConfig()
    return GameState(
        cards=CardCatalog(cards={c.id: c for c in cards}),
        config=cfg,
        seed=seed,
        rng=random.Random(seed),
        player=SideState(hand=[], deck=[], board=_board(player), bottom_card=None),
        opponent=SideState(hand=[], deck=[], board=_board(opponent), bottom_card=None),
        main_colors={"player": "RED", "opponent": "RED"},
    )


def _resolve(state: GameState) -> None:
    rolls = SeededRolls(state.seed)
    resolve_cancellations(state, range(state.config.board_slots), rolls)
    apply_effects(state, rolls)
    calculate_scores(state)


def _points(state: GameState, side: str) -> list[int | None]:
    board = state.side(side).board  # type: ignore[arg-type]
    return [pc.modified_points if pc else None for pc in board]


def test_end_to_end_first_round_adjacency_bonus() -> None:
    plain = [_card(i) for i in range(1, 8)]
    bonus = _card(8, "+3 if next to any no-power card")
    state = _state(plain + [bonus], player=[1, 2, 3, 4], opponent=[5, 8, 6, 7])

    events = resolve_round(state)

    assert state.player.total_points == 20
    assert state.opponent.total_points == 23
    assert _points(state, "opponent")[:4] == [5, 8, 5, 5]
    assert not any(e["type"] == "CARD_CANCELLED" for e in events)
    assert state.phase == "round2-place"

    result = determine_winner(state)
    assert result["winner"] == "opponent"
    assert result["method"] == "points"


def test_score_is_sum_of_non_cancelled_points() -> None:
    cards = [
        _card(1, "Cancel the opposite card"),
        _card(2, "+2 to each red card"),
        _card(3, points=7),
        _card(4, points=9),
    ]
    state = _state(cards, player=[1, 3], opponent=[4, 2])
    _resolve(state)

    cancelled = state.opponent.board[0]
    assert cancelled is not None and cancelled.cancelled
    for side in ("player", "opponent"):
        ss = state.side(side)  # type: ignore[arg-type]
        assert ss.total_points == sum(pc.modified_points for pc in ss.placed() if not pc.cancelled)
    assert state.opponent.total_points == 5


def test_cancelled_card_effect_is_inert() -> None:
    cards = [_card(1, "Cancel the opposite card"), _card(2, "+3 to each red card"), _card(3)]
    state = _state(cards, player=[1], opponent=[2, 3])
    _resolve(state)

    assert state.opponent.board[0].cancelled  # type: ignore[union-attr]
    assert _points(state, "opponent")[1] == 5
    assert state.opponent.total_points == 5


def test_earlier_slot_cancel_fires_first_and_player_wins_ties() -> None:
    cards = [_card(1, "Cancel the opposite card"), _card(2, "Cancel the opposite card")]
    state = _state(cards, player=[1], opponent=[2])
    events = resolve_cancellations(state, range(7))

    assert state.opponent.board[0].cancelled  # type: ignore[union-attr]
    assert not state.player.board[0].cancelled  # type: ignore[union-attr]
    assert [e["type"] for e in events] == ["CARD_CANCELLED"]


def test_shielded_card_is_never_cancelled() -> None:
    cards = [_card(1, "Cancel the opposite card"), _card(2, "Cannot be cancelled"), _card(3, "Cancel the opposite card")]
    state = _state(cards, player=[1, 3], opponent=[2, 2])
    events = resolve_cancellations(state, range(7))

    assert not any(pc.cancelled for pc in state.opponent.placed())
    assert [e["type"] for e in events] == ["CANCEL_BLOCKED", "CANCEL_BLOCKED"]


def test_filtered_cancel_only_hits_matching_cards() -> None:
    cards = [
        _card(1, "Cancel the opposite card if it is a jedi"),
        _card(2, types=("Jedi",)),
        _card(3, types=("Sith",)),
    ]
    state = _state(cards, player=[1, 1], opponent=[2, 3])
    resolve_cancellations(state, range(7))

    assert state.opponent.board[0].cancelled  # type: ignore[union-attr]
    assert not state.opponent.board[1].cancelled  # type: ignore[union-attr]


def test_random_cancel_is_blocked_by_shields_and_reproducible() -> None:
    cards = [_card(1, "Cancel a random opponent card"), _card(2, "Cannot be cancelled"), _card(3)]

    shielded = _state(cards, player=[1], opponent=[2, 2, 2])
    resolve_cancellations(shielded, range(7))
    assert not any(pc.cancelled for pc in shielded.opponent.placed())

    picks = []
    for _ in range(2):
        state = _state(cards, player=[1], opponent=[3, 3, 3, 3], seed=2024)
        resolve_cancellations(state, range(7))
        picks.append([pc.cancelled for pc in state.opponent.placed()])
    assert picks[0] == picks[1]
    assert sum(picks[0]) == 1


def test_points_are_clamped_at_zero() -> None:
    cards = [_card(1, points=1), _card(2, "-5 to the opposing card")]
    state = _state(cards, player=[1], opponent=[2])
    _resolve(state)

    assert _points(state, "player")[0] == 0
    assert state.player.total_points == 0


def test_negative_immunity_ignores_debuffs() -> None:
    cards = [_card(1, "Immune to negative effects"), _card(2, "-3 to each opposing red card")]
    state = _state(cards, player=[1], opponent=[2])
    _resolve(state)

    assert _points(state, "player")[0] == 5


def test_steal_moves_points() -> None:
    cards = [_card(1, "Steal 2 points from the opposing card"), _card(2, points=6)]
    state = _state(cards, player=[1], opponent=[2])
    _resolve(state)

    assert _points(state, "player")[0] == 7
    assert _points(state, "opponent")[0] == 4


def test_multiplier_and_buffs() -> None:
    cards = [
        _card(1, "x2 if next to any no-power card"),
        _card(2),
        _card(3, "+2 to each red card"),
        _card(4, "+2 if placed in a corner"),
    ]
    state = _state(cards, player=[1, 2, None, 4], opponent=[3])
    _resolve(state)

    # corner bonus on slot 3; multiplier doubles base
    assert _points(state, "player")[:4] == [10, 5, None, 7]
    # buff only reaches own cards, and never the caster
    assert _points(state, "opponent")[0] == 5


def test_all_colors_card_counts_for_every_color() -> None:
    cards = [_card(1, "This card counts as all colors", colors=("GREEN",)), _card(2)]
    state = _state(cards, player=[1], opponent=[2])
    _resolve(state)

    assert state.player.color_counts == {c: 1 for c in COLORS}


def test_color_condition_change() -> None:
    cards = [_card(1, "Change the color condition to green"), _card(2, colors=("GREEN",)), _card(3)]
    state = _state(cards, player=[1, 2], opponent=[3, 3])
    _resolve(state)

    assert state.color_conditions["player"] == "GREEN"
    assert state.color_conditions["opponent"] == "RED"


def test_unknown_card_scores_nothing() -> None:
    cards = [_card(1)]
    state = _state(cards, player=[1, 999], opponent=[1])
    events = apply_effects(state)
    calculate_scores(state)

    assert state.player.total_points == 5
    assert _points(state, "player")[1] == 0
    assert any(e["type"] == "UNKNOWN_CARD" and e["card_id"] == 999 for e in events)


def test_random_effect_is_reproducible_with_seed() -> None:
    cards = [_card(1, "Randomly gain 0 to 6 points"), _card(2)]
    results = []
    for _ in range(2):
        state = _state(cards, player=[1, 1, 1], opponent=[2], seed=31337)
        events = apply_effects(state)
        rolls = [e["value"] for e in events if e["type"] == "RANDOM_ROLL"]
        assert all(0 <= r <= 6 for r in rolls)  # type: ignore[operator]
        results.append(_points(state, "player"))
    assert results[0] == results[1]


def test_chain_effects_converge_within_cap() -> None:
    cards = [
        _card(1, "+2 if placed in a corner"),
        _card(2, "+1 for each card with a triggered effect"),
        _card(3, "+1 for each card with a triggered effect"),
    ]
    state = _state(cards, player=[1, 2, 3], opponent=[])
    events = apply_effects(state)

    assert _points(state, "player")[:3] == [7, 7, 7]
    assert not any(e["type"] == "CHAIN_UNRESOLVED" for e in events)


def test_chain_effects_dropped_when_cap_is_hit() -> None:
    cards = [
        _card(1, "+2 if placed in a corner"),
        _card(2, "+1 for each card with a triggered effect"),
        _card(3, "+1 for each card with a triggered effect"),
    ]
    state = _state(cards, player=[1, 2, 3], opponent=[], config=MatchConfig(chain_iterations=2))
    events = apply_effects(state)

    assert _points(state, "player")[:3] == [7, 5, 5]
    assert len([e for e in events if e["type"] == "CHAIN_UNRESOLVED"]) == 2


def test_per_negative_chain_counts_hits() -> None:
    cards = [
        _card(1, "+2 for each negative effect on your cards"),
        _card(2),
        _card(3, "-1 to each opposing red card"),
    ]
    state = _state(cards, player=[1, 2], opponent=[3])
    _resolve(state)

    # two own cards hit once each
    assert _points(state, "player")[:2] == [4 + 4, 4]


def test_neighbor_swap_reads_values_before_any_swap() -> None:
    cards = [
        _card(1, "Swap points with a neighboring card", points=2),
        _card(2, "Swap points with a neighboring card", points=9),
    ]
    state = _state(cards, player=[1, 2], opponent=[])
    apply_effects(state)

    # each card takes the other's value; the two swaps do not undo each other
    assert _points(state, "player")[:2] == [9, 2]


def test_neighbor_swap_sees_pass_one_bonuses() -> None:
    cards = [
        _card(1, "Swap points with a neighboring card", points=2),
        _card(2, "+3 if placed in the center"),
    ]
    state = _state(cards, player=[1, 2], opponent=[])
    apply_effects(state)

    assert _points(state, "player")[:2] == [8, 2]


def test_copy_base_points_takes_best_matching_donor() -> None:
    cards = [
        _card(1, "Copy the base points of a blue card", points=2),
        _card(2, points=9),
        _card(3, points=6, colors=("BLUE",)),
    ]
    state = _state(cards, player=[1, 2, 3], opponent=[])
    apply_effects(state)

    assert _points(state, "player")[:3] == [6, 9, 6]


def test_mirror_copies_opposing_gain() -> None:
    cards = [
        _card(1, "Mirror the opposing card's effect", points=4),
        _card(2, "+3 if placed in a corner"),
    ]
    state = _state(cards, player=[1], opponent=[2])
    apply_effects(state)

    assert _points(state, "player")[0] == 7
    assert _points(state, "opponent")[0] == 8


def test_underdog_bonus_only_when_behind() -> None:
    cards = [
        _card(1, "+4 if your total is lower than opponent's", points=3),
        _card(2, "+4 if your total is lower than opponent's", points=9),
    ]
    state = _state(cards, player=[1], opponent=[2])
    apply_effects(state)

    assert _points(state, "player")[0] == 7
    assert _points(state, "opponent")[0] == 9


def test_underdog_compares_scored_total_in_second_round() -> None:
    plain = [_card(i) for i in range(1, 9)]
    cards = plain + [
        _card(10, "+4 if your total is lower than opponent's", points=3),
        _card(11, "+4 if your total is lower than opponent's", points=9),
    ]
    state = _state(cards, player=[1, 2, 3, 4, 10], opponent=[5, 6, 7, 8, 11])
    state.phase = "round2-place"
    # round one already scored; base points alone would put the player behind
    state.player.total_points = 30
    state.opponent.total_points = 10
    apply_effects(state)

    assert _points(state, "player")[4] == 3
    assert _points(state, "opponent")[4] == 13


def test_underdog_multiplier_for_last_card_standing() -> None:
    cards = [
        _card(1, "x2 if this is your only non-cancelled card", points=4),
        _card(2),
        _card(3),
        _card(4, "Cancel the opposite card"),
    ]
    state = _state(cards, player=[1, 2], opponent=[3, 4])
    _resolve(state)

    assert state.player.board[1].cancelled  # type: ignore[union-attr]
    assert _points(state, "player")[0] == 8

    state = _state(cards, player=[1, 2], opponent=[3])
    _resolve(state)
    assert _points(state, "player")[0] == 4


def test_center_and_slot_position_bonuses() -> None:
    cards = [
        _card(1, "+3 if placed in the center"),
        _card(2, "+3 if placed in the center"),
        _card(3, "+4 if played in slot 3"),
        _card(4, "+4 if played in slot 3"),
    ]
    state = _state(cards, player=[2, 1, 3, 4], opponent=[])
    apply_effects(state)

    # centres are slots 1, 2 and 5; "slot 3" is the third slot
    assert _points(state, "player")[:4] == [5, 8, 9, 5]


def test_adjacent_filled_counts_occupied_neighbors() -> None:
    cards = [
        _card(1),
        _card(2, "+2 for each adjacent filled slot"),
        _card(3),
        _card(4, "+2 for each adjacent filled slot"),
    ]
    state = _state(cards, player=[1, 2, 3, 4], opponent=[])
    apply_effects(state)

    assert _points(state, "player")[:4] == [5, 9, 5, 7]


def test_resource_effects_count_hands() -> None:
    cards = [
        _card(1, "+1 for each card in your hand"),
        _card(2, "+2 for each card in opponent's hand"),
    ]
    state = _state(cards, player=[1], opponent=[2])
    state.player.hand = [90, 91]
    state.opponent.hand = [92, 93, 94]
    apply_effects(state)

    assert _points(state, "player")[0] == 7
    assert _points(state, "opponent")[0] == 9


def test_double_left_and_right_chains() -> None:
    cards = [
        _card(1, "+2 if placed in a corner"),
        _card(2, "Double the effect of the card to the left"),
        _card(3, "Double the effect of the card to the right"),
        _card(4, "+3 if placed in the center"),
    ]
    state = _state(cards, player=[1, 2], opponent=[3, 4])
    events = apply_effects(state)

    assert _points(state, "player")[:2] == [9, 5]
    assert _points(state, "opponent")[:2] == [5, 11]
    assert not any(e["type"] == "CHAIN_UNRESOLVED" for e in events)


def test_double_neighbors_chain() -> None:
    cards = [
        _card(1, "+2 if placed in a corner"),
        _card(2, "Double each neighboring card's effect"),
        _card(3, "+3 if placed in the center"),
        _card(4),
    ]
    state = _state(cards, player=[1, 2, 3], opponent=[])
    apply_effects(state)
    assert _points(state, "player")[:3] == [9, 5, 11]

    # nothing to double next to a plain card
    state = _state(cards, player=[4, 2], opponent=[])
    apply_effects(state)
    assert _points(state, "player")[:2] == [5, 5]


def test_win_by_points() -> None:
    state = _state([], player=[], opponent=[])
    state.player.total_points = 21
    state.opponent.total_points = 20
    determine_winner(state)
    assert (state.winner, state.win_method) == ("player", "points")


def test_win_by_color_on_equal_points() -> None:
    state = _state([], player=[], opponent=[])
    state.player.total_points = state.opponent.total_points = 20
    state.color_conditions = {"player": "RED", "opponent": "BLUE"}
    state.player.color_counts = {"RED": 2}
    state.opponent.color_counts = {"BLUE": 3, "RED": 5}
    determine_winner(state)
    assert (state.winner, state.win_method) == ("opponent", "color")


def test_draw_when_points_and_colors_are_equal() -> None:
    state = _state([], player=[], opponent=[])
    state.player.total_points = state.opponent.total_points = 20
    state.player.color_counts = {"RED": 2}
    state.opponent.color_counts = {"RED": 2}
    event = determine_winner(state)
    assert (state.winner, state.win_method) == ("none", "none")
    assert event["type"] == "GAME_ENDED"
