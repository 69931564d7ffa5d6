"""Board exchange between the two clients of a PvP match.

Each client publishes its own board once it has confirmed the round and then
blocks until the peer's board for the same round shows up. Nothing but
placements is exchanged; both clients resolve the round themselves from the
shared seed and must reach the same result.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Protocol

from gtoons.engine.errors import PeerBoardInvalid
from gtoons.engine.match import confirm_placement, receive_peer_board
from gtoons.engine.placement import place_card
from gtoons.engine.serialize import board_from_wire, board_to_wire
from gtoons.engine.state import Event, GameState, PlacedCard
from gtoons.engine.types import Side, other_side

logger = logging.getLogger(__name__)

Payload = dict[str, object]


class SyncTimeout(TimeoutError):
    pass


class MatchSyncService(Protocol):
    def publish(self, match_id: str, side: Side, payload: Mapping[str, object]) -> None: ...

    def fetch(self, match_id: str, side: Side, round_no: int | None = None) -> Payload | None: ...

    def wait_for_peer(self, match_id: str, side: Side, round_no: int, timeout: float | None = None) -> Payload: ...


class InMemorySyncService:
    """Thread-safe, process-local sync service (hot-seat play and tests)."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._boards: dict[tuple[str, Side, int], Payload] = {}

    def publish(self, match_id: str, side: Side, payload: Mapping[str, object]) -> None:
        round_no = payload.get("round")
        if not isinstance(round_no, int):
            raise ValueError("payload needs an integer round")
        with self._cond:
            self._boards[(match_id, side, round_no)] = dict(payload)
            self._cond.notify_all()
        logger.debug("Published %s board for match %s round %d", side, match_id, round_no)

    def fetch(self, match_id: str, side: Side, round_no: int | None = None) -> Payload | None:
        with self._cond:
            if round_no is not None:
                found = self._boards.get((match_id, side, round_no))
                return dict(found) if found is not None else None
            rounds = [r for (m, s, r) in self._boards if m == match_id and s == side]
            if not rounds:
                return None
            return dict(self._boards[(match_id, side, max(rounds))])

    def wait_for_peer(self, match_id: str, side: Side, round_no: int, timeout: float | None = None) -> Payload:
        """Block until `side` has published a ready board for `round_no`."""

        def ready() -> bool:
            payload = self._boards.get((match_id, side, round_no))
            return payload is not None and bool(payload.get("ready"))

        with self._cond:
            if not self._cond.wait_for(ready, timeout=timeout):
                raise SyncTimeout(f"No {side} board for match {match_id} round {round_no}")
            return dict(self._boards[(match_id, side, round_no)])


class MatchClient:
    """Drives one side of a PvP match against a sync service."""

    def __init__(
        self,
        match_id: str,
        state: GameState,
        local_side: Side,
        sync: MatchSyncService,
        timeout: float | None = None,
    ) -> None:
        self.match_id = match_id
        self.state = state
        self.local_side = local_side
        self.peer_side = other_side(local_side)
        self.sync = sync
        self.timeout = timeout
        self.aborted = False

    def place(self, card_id: int, slot: int) -> PlacedCard:
        return place_card(self.state, self.local_side, card_id, slot)

    def submit(self) -> list[Event]:
        """Confirm the local round, exchange boards and resolve.

        Blocks until the peer's board arrives. A peer board that fails
        validation aborts the match and PeerBoardInvalid propagates.
        """
        if self.aborted:
            raise PeerBoardInvalid("Match was aborted.")
        state = self.state
        round_no = state.round_no
        mark = len(state.event_log)

        confirm_placement(state, self.local_side)
        self.sync.publish(self.match_id, self.local_side, board_to_wire(state, self.local_side))

        payload = self.sync.wait_for_peer(self.match_id, self.peer_side, round_no, timeout=self.timeout)
        try:
            if payload.get("side") != self.peer_side or payload.get("round") != round_no:
                raise PeerBoardInvalid("Peer payload is for another side or round.")
            bottom = payload.get("bottom_card")
            receive_peer_board(
                state,
                self.peer_side,
                board_from_wire(payload),
                ready=True,
                bottom_card=bottom if isinstance(bottom, int) else None,
            )
        except PeerBoardInvalid as e:
            self.aborted = True
            state.event_log.append({"type": "MATCH_ABORTED", "reason": str(e)})
            logger.error("Match %s aborted: %s", self.match_id, e)
            raise
        return state.event_log[mark:]
