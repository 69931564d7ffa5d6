from __future__ import annotations

import argparse
import logging
import sys
import threading
import uuid
from collections.abc import Callable

from gtoons.engine.actions import ConfirmPlacementAction, PlaceCardAction
from gtoons.engine.ai import AISpec, ai_place_cards
from gtoons.engine.errors import GameError, PeerBoardInvalid
from gtoons.engine.match import new_match, new_pvp_match, step
from gtoons.engine.placement import legal_slots
from gtoons.engine.state import GameState
from gtoons.engine.types import SIDES, CardCatalog, Side
from gtoons.paths import get_paths
from gtoons.services.content import ContentError, ContentService
from gtoons.services.sync import InMemorySyncService, MatchClient
from gtoons.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]


def _card_label(cards: CardCatalog, card_id: int) -> str:
    card = cards.lookup(card_id)
    if card is None:
        return f"#{card_id} ?"
    return f"{card.title} [{'/'.join(card.colors)}] {card.base_points}pt - {card.description}"


def render(state: GameState) -> str:
    lines: list[str] = []
    for side in SIDES:
        ss = state.side(side)
        cells: list[str] = []
        for pc in ss.board:
            if pc is None:
                cells.append("   .   ")
                continue
            card = state.cards.lookup(pc.card_id)
            name = card.character[:10] if card else f"#{pc.card_id}"
            mark = " X" if pc.cancelled else ""
            cells.append(f"{name}:{pc.modified_points}{mark}")
        color = state.main_colors.get(side, "-")
        lines.append(f"{side:>8} ({color}, {ss.total_points} pts): " + " | ".join(cells))
    return "\n".join(lines)


def _prompt_placements(state: GameState, side: Side, ask: InputFn) -> list[PlaceCardAction]:
    """Ask for one card per open slot of the current round."""
    actions: list[PlaceCardAction] = []
    ss = state.side(side)
    for slot in legal_slots(state):
        if ss.board[slot] is not None:
            continue
        while True:
            print(f"\n{side} hand:")
            for i, card_id in enumerate(ss.hand):
                print(f"  {i}: {_card_label(state.cards, card_id)}")
            raw = ask(f"card for slot {slot + 1}> ").strip()
            if not raw.isdigit() or int(raw) >= len(ss.hand):
                print("Pick a hand number.")
                continue
            action = PlaceCardAction(side=side, card_id=ss.hand[int(raw)], slot=slot)
            res = step(state, action)
            if not res.ok:
                print(f"Rejected: {res.error}")
                continue
            actions.append(action)
            break
    return actions


def _announce(state: GameState) -> None:
    print()
    print(render(state))
    if state.winner is not None:
        print(f"\nWinner: {state.winner} (by {state.win_method})")


def _load(content: ContentService, deck_slot: str) -> tuple[CardCatalog, list[int]]:
    cards = content.load_cards_db()
    decks = content.load_starter_decks(cards)
    if deck_slot not in decks:
        raise ContentError(f"No starter deck {deck_slot!r}; choose one of {', '.join(sorted(decks))}")
    return cards, list(decks[deck_slot].card_ids)


def play_vs_ai(args: argparse.Namespace, content: ContentService, telemetry: TelemetryService, ask: InputFn) -> int:
    cards, deck = _load(content, args.deck)
    spec = AISpec(difficulty=args.difficulty, prefer_main_color=args.prefer_main_color)
    seed = args.seed if args.seed is not None else uuid.uuid4().int % 1_000_000
    state = new_match(cards, deck, None, seed=seed, ai=spec)
    match_id = f"ai-{seed}"
    logger.info("Started match %s with deck %s", match_id, args.deck)

    while state.phase != "game-over":
        print(f"\n== {state.phase} ==")
        print(render(state))
        if args.auto:
            slots = legal_slots(state)
            ai_place_cards(state, len(slots), slots[0], spec, side="player")
        else:
            _prompt_placements(state, "player", ask)
        res = step(state, ConfirmPlacementAction(side="player"))
        if not res.ok:
            print(f"Rejected: {res.error}")

    _announce(state)
    telemetry.log_match(match_id, state)
    return 0


def _pvp_round(clients: dict[Side, MatchClient]) -> None:
    errors: list[BaseException] = []

    def run(client: MatchClient) -> None:
        try:
            client.submit()
        except (GameError, TimeoutError) as e:
            errors.append(e)

    threads = [threading.Thread(target=run, args=(c,), name=f"pvp-{side}") for side, c in clients.items()]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]


def play_hot_seat(args: argparse.Namespace, content: ContentService, telemetry: TelemetryService, ask: InputFn) -> int:
    cards, host_deck = _load(content, args.deck)
    _, guest_deck = _load(content, args.peer_deck)
    match_id = uuid.uuid4().hex[:12]
    # both clients seed from the match id
    seed = args.seed if args.seed is not None else match_id
    sync = InMemorySyncService()
    clients: dict[Side, MatchClient] = {
        "player": MatchClient(match_id, new_pvp_match(cards, "player", host_deck, seed), "player", sync, args.timeout),
        "opponent": MatchClient(match_id, new_pvp_match(cards, "opponent", guest_deck, seed), "opponent", sync, args.timeout),
    }
    logger.info("Started hot-seat match %s", match_id)

    host = clients["player"].state
    while host.phase != "game-over":
        for side, client in clients.items():
            print(f"\n== {client.state.phase}: {side} ==")
            if args.auto:
                slots = legal_slots(client.state)
                ai_place_cards(client.state, len(slots), slots[0], AISpec(), side=side)
            else:
                _prompt_placements(client.state, side, ask)
        try:
            _pvp_round(clients)
        except PeerBoardInvalid as e:
            print(f"Match aborted: {e}")
            telemetry.log_match(match_id, host)
            return 1

    _announce(host)
    guest = clients["opponent"].state
    if (guest.winner, guest.player.total_points, guest.opponent.total_points) != (
        host.winner,
        host.player.total_points,
        host.opponent.total_points,
    ):
        logger.error("Clients disagree on the result of match %s", match_id)
        return 1
    telemetry.log_match(match_id, host)
    return 0


def validate(content: ContentService) -> int:
    content.validate_all()
    print("Content OK")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gtoons")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command")

    play = sub.add_parser("play", help="play against the computer")
    play.add_argument("--deck", default="A", help="starter deck slot")
    play.add_argument("--seed", type=int, default=None)
    play.add_argument("--difficulty", type=int, default=1)
    play.add_argument("--prefer-main-color", action="store_true")
    play.add_argument("--auto", action="store_true", help="let the heuristic place your cards too")

    pvp = sub.add_parser("pvp", help="two players on one terminal")
    pvp.add_argument("--deck", default="A")
    pvp.add_argument("--peer-deck", default="B")
    pvp.add_argument("--seed", type=int, default=None)
    pvp.add_argument("--timeout", type=float, default=None)
    pvp.add_argument("--auto", action="store_true")

    sub.add_parser("validate", help="validate the shipped card content")
    return parser


def main(argv: list[str] | None = None, ask: InputFn = input) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    paths = get_paths()
    content = ContentService(data_dir=paths.data_dir, schema_dir=paths.schema_dir)
    telemetry = TelemetryService(paths.userdata_dir / "telemetry.jsonl")

    try:
        if args.command == "validate":
            return validate(content)
        if args.command == "pvp":
            return play_hot_seat(args, content, telemetry, ask)
        if args.command is None:
            args = build_parser().parse_args([*(sys.argv[1:] if argv is None else argv), "play"])
        return play_vs_ai(args, content, telemetry, ask)
    except ContentError as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
