from __future__ import annotations

import threading

import pytest

from gtoons.engine.ai import AISpec, ai_place_cards
from gtoons.engine.errors import PeerBoardInvalid
from gtoons.engine.match import new_pvp_match, receive_peer_board
from gtoons.engine.placement import legal_slots
from gtoons.engine.serialize import board_from_wire, board_to_wire
from gtoons.engine.state import PlacedCard
from gtoons.engine.types import Side
from gtoons.paths import get_paths
from gtoons.services.content import ContentService
from gtoons.services.sync import InMemorySyncService, MatchClient, SyncTimeout


def _load_content():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    cards = content.load_cards_db()
    return cards, content.load_starter_decks(cards)


def _clients(match_id: str = "m1", seed: object = "m1") -> tuple[dict[Side, MatchClient], InMemorySyncService]:
    cards, decks = _load_content()
    sync = InMemorySyncService()
    clients: dict[Side, MatchClient] = {
        "player": MatchClient(match_id, new_pvp_match(cards, "player", decks["A"].card_ids, seed), "player", sync, timeout=5),
        "opponent": MatchClient(match_id, new_pvp_match(cards, "opponent", decks["D"].card_ids, seed), "opponent", sync, timeout=5),
    }
    return clients, sync


def _auto_place(client: MatchClient) -> None:
    slots = legal_slots(client.state)
    ai_place_cards(client.state, len(slots), slots[0], AISpec(), side=client.local_side)


def _submit_both(clients: dict[Side, MatchClient]) -> None:
    errors: list[BaseException] = []

    def run(c: MatchClient) -> None:
        try:
            c.submit()
        except Exception as e:  # surfaced below
            errors.append(e)

    threads = [threading.Thread(target=run, args=(c,)) for c in clients.values()]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    assert not errors, errors


def test_both_clients_reach_the_same_result() -> None:
    clients, _ = _clients()
    for _ in range(2):
        for c in clients.values():
            _auto_place(c)
        _submit_both(clients)

    host = clients["player"].state
    guest = clients["opponent"].state
    assert host.phase == guest.phase == "game-over"
    assert host.winner == guest.winner
    assert host.win_method == guest.win_method
    assert host.main_colors == guest.main_colors
    for side in ("player", "opponent"):
        h = host.side(side)  # type: ignore[arg-type]
        g = guest.side(side)  # type: ignore[arg-type]
        assert h.total_points == g.total_points
        assert [(pc.card_id, pc.modified_points, pc.cancelled) for pc in h.placed()] == [
            (pc.card_id, pc.modified_points, pc.cancelled) for pc in g.placed()
        ]
        assert len(h.placed()) == 7


def test_invalid_peer_board_aborts_match() -> None:
    clients, sync = _clients()
    host = clients["player"]
    _auto_place(host)

    # peer claims two copies of the same card
    sync.publish(
        "m1",
        "opponent",
        {
            "side": "opponent",
            "round": 1,
            "ready": True,
            "bottom_card": 454,
            "board": [{"card_id": 454, "position": i} for i in range(4)] + [None, None, None],
        },
    )
    with pytest.raises(PeerBoardInvalid):
        host.submit()
    assert host.aborted
    assert host.state.event_log[-1]["type"] == "MATCH_ABORTED"
    with pytest.raises(PeerBoardInvalid):
        host.submit()


def test_peer_cannot_rewrite_earlier_round() -> None:
    clients, _ = _clients()
    for c in clients.values():
        _auto_place(c)
    _submit_both(clients)

    host = clients["player"].state
    guest = clients["opponent"].state
    slots = legal_slots(guest)
    ai_place_cards(guest, len(slots), slots[0], AISpec(), side="opponent")
    board = board_from_wire(board_to_wire(guest, "opponent"))
    # swap two round-1 cards
    first, second = board[0], board[1]
    assert first is not None and second is not None
    board[0] = PlacedCard(card_id=second.card_id, position=0, modified_points=0)
    board[1] = PlacedCard(card_id=first.card_id, position=1, modified_points=0)

    with pytest.raises(PeerBoardInvalid):
        receive_peer_board(host, "opponent", board)


def test_board_from_wire_rejects_malformed_payloads() -> None:
    with pytest.raises(PeerBoardInvalid):
        board_from_wire({"board": "nope"})
    with pytest.raises(PeerBoardInvalid):
        board_from_wire({"board": [{"card_id": "1", "position": 0}]})
    with pytest.raises(PeerBoardInvalid):
        board_from_wire({"board": [{"card_id": True, "position": 0}]})
    board = board_from_wire({"board": [None, {"card_id": 5, "position": 1}]})
    assert board[0] is None and board[1] is not None and board[1].modified_points == 0


def test_wait_for_peer_times_out() -> None:
    sync = InMemorySyncService()
    sync.publish("m2", "player", {"side": "player", "round": 1, "ready": False, "board": []})
    with pytest.raises(SyncTimeout):
        sync.wait_for_peer("m2", "player", 1, timeout=0.05)
    assert sync.fetch("m2", "player") == {"side": "player", "round": 1, "ready": False, "board": []}
    assert sync.fetch("m2", "opponent") is None
