from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from gtoons.engine.effects import parse_effects
from gtoons.engine.types import CardCatalog, CardDefinition

logger = logging.getLogger(__name__)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def _load_schema(path: Path) -> object:
    return _load_json(path)


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _require_list(obj: Mapping[str, object], key: str) -> list[object]:
    v = obj.get(key)
    if not isinstance(v, list):
        raise ContentError(f"Expected list for {key}")
    return v


def _str_tuple(raw: object) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(item for item in raw if isinstance(item, str))


@dataclass(frozen=True)
class StarterDeck:
    slot: str
    name: str
    description: str
    card_ids: tuple[int, ...]


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_cards_db(self) -> CardCatalog:
        cards_path = self._data_dir / "cards.json"
        schema_path = self._schema_dir / "cards.schema.json"
        raw = _load_json(cards_path)
        schema = _load_schema(schema_path)
        validate_json(raw, schema, context=str(cards_path))

        if not isinstance(raw, dict):
            raise ContentError("cards.json must be an object")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[int, CardDefinition] = {}
        for item in raw_cards:
            if not isinstance(item, dict):
                continue
            card_id = _require_int(item, "id")
            if card_id in cards:
                raise ContentError(f"Duplicate card id {card_id}")
            description = _require_str(item, "description")
            card = CardDefinition(
                id=card_id,
                title=_require_str(item, "title"),
                character=_require_str(item, "character"),
                base_points=_require_int(item, "base_points"),
                colors=_str_tuple(_require_list(item, "colors")),
                rarity=_require_str(item, "rarity"),  # type: ignore[arg-type]
                description=description,
                groups=_str_tuple(item.get("groups", [])),
                types=_str_tuple(item.get("types", [])),
                # effect text is parsed once, here
                effects=parse_effects(description),
            )
            cards[card.id] = card
        logger.info("Loaded %d cards from %s", len(cards), cards_path)
        return CardCatalog(cards=cards)

    def load_starter_decks(self, cards: CardCatalog | None = None) -> dict[str, StarterDeck]:
        """Starter decks keyed by slot letter.

        With `cards` given, every deck is also checked against the catalog:
        known card ids and one card per character.
        """
        path = self._data_dir / "starter_decks.json"
        schema = _load_schema(self._schema_dir / "starter_decks.schema.json")
        raw = _load_json(path)
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError("starter_decks.json must be an object")

        decks: dict[str, StarterDeck] = {}
        for item in _require_list(raw, "decks"):
            if not isinstance(item, dict):
                continue
            ids = tuple(i for i in _require_list(item, "card_ids") if isinstance(i, int))
            deck = StarterDeck(
                slot=_require_str(item, "slot"),
                name=_require_str(item, "name"),
                description=str(item.get("description", "")),
                card_ids=ids,
            )
            if cards is not None:
                _check_deck(deck, cards)
            decks[deck.slot] = deck
        return decks

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        cards = self.load_cards_db()
        _ = self.load_starter_decks(cards)


def _check_deck(deck: StarterDeck, cards: CardCatalog) -> None:
    seen: set[str] = set()
    for card_id in deck.card_ids:
        card = cards.lookup(card_id)
        if card is None:
            raise ContentError(f"Starter deck {deck.slot} references unknown card {card_id}")
        if card.character in seen:
            raise ContentError(f"Starter deck {deck.slot} repeats character {card.character}")
        seen.add(card.character)
