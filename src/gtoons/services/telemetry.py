from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from gtoons.engine.state import GameState

logger = logging.getLogger(__name__)

# Engine events worth keeping in the match log; per-card resolution noise is not.
RECORDED_EVENTS = frozenset(
    {"MATCH_STARTED", "CARD_CANCELLED", "CANCEL_BLOCKED", "CHAIN_UNRESOLVED", "ROUND_RESOLVED", "GAME_ENDED"}
)


@dataclass
class TelemetryService:
    """Append-only JSONL log of match activity."""

    path: Path

    def log(self, event_type: str, payload: Mapping[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "type": event_type,
            "payload": dict(payload),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def log_match(self, match_id: str, state: GameState) -> int:
        """Record the notable engine events of a finished (or aborted) match."""
        written = 0
        for event in state.event_log:
            event_type = str(event.get("type"))
            if event_type not in RECORDED_EVENTS:
                continue
            payload = {k: v for k, v in event.items() if k != "type"}
            payload["match_id"] = match_id
            self.log(event_type, payload)
            written += 1
        logger.debug("Wrote %d telemetry records for match %s", written, match_id)
        return written
