"""Parse card effect text into effect values.

Card descriptions are written from a fixed set of templates ("+3 if next to
any Jedi", "-2 to each opposing Droid", "Cannot be cancelled", ...). They are
parsed once, when the catalog is loaded; the resolver only ever sees the
resulting dataclasses. Several effects can be chained with ";".
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from .types import (
    COLORS,
    BuffEffect,
    CancelEffect,
    CardFilter,
    ChainEffect,
    ColorEffect,
    Condition,
    ConditionalBonusEffect,
    CountEffect,
    DebuffEffect,
    Effect,
    MultiplierEffect,
    NoPowerEffect,
    PositionEffect,
    RandomEffect,
    ResourceEffect,
    ShieldEffect,
    StealEffect,
    SwapEffect,
    UnderdogEffect,
)

logger = logging.getLogger(__name__)

_LEADING = ("any ", "a ", "an ", "the ", "all ", "each ")
_OTHER = ("other ", "another ")
_TRAILING = (
    " in play",
    " cards",
    " card",
    " gtoons",
    " gtoon",
    " toons",
    " toon",
    " members",
    " member",
)
_ANY_WORDS = frozenset({"", "card", "cards", "gtoon", "gtoons", "toon", "toons"})


def parse_filter(text: str) -> CardFilter:
    t = text.strip().lower().rstrip(".")
    other = False
    changed = True
    while changed:
        changed = False
        for prefix in _LEADING + _OTHER:
            if t.startswith(prefix):
                other = other or prefix in _OTHER
                t = t[len(prefix):]
                changed = True

    if t in _ANY_WORDS:
        return CardFilter(kind="any", other=other)
    if "no-power" in t or "no power" in t:
        return CardFilter(kind="no_power", other=other)

    changed = True
    while changed:
        changed = False
        for suffix in _TRAILING:
            if t.endswith(suffix):
                t = t[: -len(suffix)]
                changed = True

    m = re.fullmatch(r"(\d+)s", t)
    if m:
        return CardFilter(kind="points", values=(m.group(1),), other=other)

    alternatives = tuple(a.strip() for a in re.split(r"\s+(?:or|and)\s+|\s*,\s*|/", t) if a.strip())
    if not alternatives:
        return CardFilter(kind="any", other=other)
    if all(a.upper() in COLORS for a in alternatives):
        return CardFilter(kind="color", values=tuple(a.upper() for a in alternatives), other=other)
    return CardFilter(kind="name", values=alternatives, other=other)


def _amount(raw: str) -> int:
    return int(raw.replace("+", ""))


def _cond(kind: str, *filters: str, scope: str = "all") -> Condition:
    return Condition(kind=kind, filters=tuple(parse_filter(f) for f in filters), scope=scope)  # type: ignore[arg-type]


def _color(raw: str) -> str:
    return raw.strip().upper()


_Builder = Callable[[re.Match[str]], Effect]

_N = r"([+-]?\d+)"

# Order matters: the first matching template wins.
_TEMPLATES: list[tuple[str, _Builder]] = [
    # defensive
    (r"no powers?", lambda m: NoPowerEffect(type="no_power")),
    (r"(?:cannot be cancell?ed|shielded\b.*)", lambda m: ShieldEffect(type="shield", cancel=True)),
    (
        r"immune to cancell?ation( and negative effects)?",
        lambda m: ShieldEffect(type="shield", cancel=True, negative=m.group(1) is not None),
    ),
    (r"immune to negative effects", lambda m: ShieldEffect(type="shield", cancel=False, negative=True)),
    # cancel
    (
        r"cancels? (?:the )?opposite (?:card|gtoon|toon)(?: if it is (.+))?",
        lambda m: CancelEffect(
            type="cancel", target="opposite", filter=parse_filter(m.group(1)) if m.group(1) else None
        ),
    ),
    (
        r"cancel a random opponent(?:'s)? (?:card|gtoon|toon)",
        lambda m: CancelEffect(type="cancel", target="random"),
    ),
    # chain / combo
    (
        rf"{_N} for each card with a triggered effect",
        lambda m: ChainEffect(type="chain", mode="per_triggered", amount=_amount(m.group(1))),
    ),
    (
        rf"{_N} for each negative effect on your cards",
        lambda m: ChainEffect(type="chain", mode="per_negative", amount=_amount(m.group(1))),
    ),
    (r"double each neighboring card'?s effect", lambda m: ChainEffect(type="chain", mode="double_neighbors")),
    (
        r"double the effect of the card to the (left|right)",
        lambda m: ChainEffect(type="chain", mode="double_left" if m.group(1) == "left" else "double_right"),
    ),
    # color manipulation
    (r"this card counts as all colou?rs", lambda m: ColorEffect(type="color", mode="all_colors")),
    (
        r"change the colou?r condition to (\w+)",
        lambda m: ColorEffect(type="color", mode="change_condition", color_to=_color(m.group(1))),
    ),
    (
        r"convert all (\w+) cards to (\w+)",
        lambda m: ColorEffect(
            type="color", mode="convert", color_from=_color(m.group(1)), color_to=_color(m.group(2))
        ),
    ),
    # underdog
    (
        r"x(\d) if your total is lower than opponent'?s",
        lambda m: UnderdogEffect(type="underdog", mode="behind", factor=int(m.group(1))),
    ),
    (
        r"x(\d) if this is your only non-cancell?ed card",
        lambda m: UnderdogEffect(type="underdog", mode="only_card", factor=int(m.group(1))),
    ),
    (
        rf"{_N} if your total is lower than opponent'?s",
        lambda m: UnderdogEffect(type="underdog", mode="behind", amount=_amount(m.group(1))),
    ),
    # position
    (
        rf"{_N} if placed in (?:a |the )?corner",
        lambda m: PositionEffect(type="position", amount=_amount(m.group(1)), where="corner"),
    ),
    (
        rf"{_N} if placed in (?:the )?center",
        lambda m: PositionEffect(type="position", amount=_amount(m.group(1)), where="center"),
    ),
    (
        rf"{_N} for each adjacent filled slot",
        lambda m: PositionEffect(type="position", amount=_amount(m.group(1)), where="adjacent_filled"),
    ),
    (
        rf"{_N} if played in slot (\d)",
        lambda m: PositionEffect(
            type="position", amount=_amount(m.group(1)), where="slot", slot=int(m.group(2)) - 1
        ),
    ),
    # resource
    (
        rf"{_N} for each card (?:still )?in your hand",
        lambda m: ResourceEffect(type="resource", amount=_amount(m.group(1)), whose="own"),
    ),
    (
        rf"{_N} for each card in opponent'?s hand",
        lambda m: ResourceEffect(type="resource", amount=_amount(m.group(1)), whose="opponent"),
    ),
    # random
    (
        r"(?:randomly|dice roll:) gain ([+-]?\d+) to \+?(\d+)(?: points?)?",
        lambda m: RandomEffect(type="random", outcomes=tuple(range(_amount(m.group(1)), int(m.group(2)) + 1))),
    ),
    (
        r"coin flip: \+(\d+) or -(\d+)",
        lambda m: RandomEffect(type="random", outcomes=(int(m.group(1)), -int(m.group(2)))),
    ),
    # conditional bonus
    (
        rf"{_N} if played in (?:the )?2nd round",
        lambda m: ConditionalBonusEffect(type="conditional", amount=_amount(m.group(1)), condition=_cond("round2")),
    ),
    (
        rf"{_N} if played first in (?:the )?first round",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("first_slot")
        ),
    ),
    (
        rf"{_N} if played as the last card",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("last_slot")
        ),
    ),
    (
        rf"{_N} if (.+?) and (.+?) are both in play",
        lambda m: ConditionalBonusEffect(
            type="conditional",
            amount=_amount(m.group(1)),
            condition=_cond("all_in_play", m.group(2), m.group(3)),
        ),
    ),
    (
        rf"{_N} if opponent has (.+?) in play",
        lambda m: ConditionalBonusEffect(
            type="conditional",
            amount=_amount(m.group(1)),
            condition=_cond("in_play", m.group(2), scope="opponent"),
        ),
    ),
    (
        rf"{_N} if (.+?) is in play",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("in_play", m.group(2))
        ),
    ),
    (
        rf"{_N} if (?:next|adjacent) to (.+)",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("next_to", m.group(2))
        ),
    ),
    (
        rf"{_N} if opposite card has higher base points",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("opposite_higher")
        ),
    ),
    (
        rf"{_N} if opposite card has lower base points",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("opposite_lower")
        ),
    ),
    (
        rf"{_N} if opposite card is the same colou?r",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("opposite_same_color")
        ),
    ),
    (
        rf"{_N} if opposite card is a different colou?r",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("opposite_different_color")
        ),
    ),
    (
        rf"{_N} if opposite card is (.+)",
        lambda m: ConditionalBonusEffect(
            type="conditional", amount=_amount(m.group(1)), condition=_cond("opposite_is", m.group(2))
        ),
    ),
    # multiplier
    (
        r"x(\d) if (?:next|adjacent) to (.+)",
        lambda m: MultiplierEffect(type="multiplier", factor=int(m.group(1)), condition=_cond("next_to", m.group(2))),
    ),
    (
        r"x(\d) if opposite card has higher base points",
        lambda m: MultiplierEffect(type="multiplier", factor=int(m.group(1)), condition=_cond("opposite_higher")),
    ),
    (
        r"x(\d) if opposite card is (.+)",
        lambda m: MultiplierEffect(
            type="multiplier", factor=int(m.group(1)), condition=_cond("opposite_is", m.group(2))
        ),
    ),
    (
        r"x(\d) if (.+?) or (.+?) is in play",
        lambda m: MultiplierEffect(
            type="multiplier", factor=int(m.group(1)), condition=_cond("any_in_play", m.group(2), m.group(3))
        ),
    ),
    (
        r"x(\d) if (.+?) is in play",
        lambda m: MultiplierEffect(type="multiplier", factor=int(m.group(1)), condition=_cond("in_play", m.group(2))),
    ),
    # counting
    (
        rf"{_N} for each neighboring (.+)",
        lambda m: CountEffect(
            type="count", amount=_amount(m.group(1)), filter=parse_filter(m.group(2)), scope="neighbors"
        ),
    ),
    (
        rf"{_N} for each opponent (.+)",
        lambda m: CountEffect(
            type="count", amount=_amount(m.group(1)), filter=parse_filter(m.group(2)), scope="opponent"
        ),
    ),
    (
        rf"{_N} for each (.+?) opponent",
        lambda m: CountEffect(
            type="count", amount=_amount(m.group(1)), filter=parse_filter(m.group(2)), scope="opponent"
        ),
    ),
    (
        rf"{_N} for each own (.+)",
        lambda m: CountEffect(type="count", amount=_amount(m.group(1)), filter=parse_filter(m.group(2)), scope="own"),
    ),
    (
        rf"{_N} for each (.+)",
        lambda m: CountEffect(type="count", amount=_amount(m.group(1)), filter=parse_filter(m.group(2)), scope="all"),
    ),
    # steal / swap
    (
        r"steal (\d+) points? from (?:the )?(?:opposing|opposite) (?:card|gtoon|toon)",
        lambda m: StealEffect(type="steal", amount=int(m.group(1)), scope="opposite"),
    ),
    (
        r"steal (\d+) points? from all opposing (?:cards|gtoons|toons)",
        lambda m: StealEffect(type="steal", amount=int(m.group(1)), scope="opponent"),
    ),
    (
        r"swap points with (?:a |any )?neighboring (.+)",
        lambda m: SwapEffect(type="swap", mode="neighbor_points", filter=parse_filter(m.group(1))),
    ),
    (
        r"copy the base points of (.+)",
        lambda m: SwapEffect(type="swap", mode="copy_base", filter=parse_filter(m.group(1))),
    ),
    (r"mirror (?:the )?opposing card'?s effect", lambda m: SwapEffect(type="swap", mode="mirror")),
    # buff
    (
        r"x(\d) to (?:each |any )?neighboring (.+)",
        lambda m: BuffEffect(
            type="buff", amount=0, factor=int(m.group(1)), filter=parse_filter(m.group(2)), scope="neighbors"
        ),
    ),
    (
        r"\+(\d+) to (?:each |all )?neighboring (.+)",
        lambda m: BuffEffect(type="buff", amount=int(m.group(1)), filter=parse_filter(m.group(2)), scope="neighbors"),
    ),
    (
        r"\+(\d+) to (.+?) if (?:next|adjacent) to (.+)",
        lambda m: BuffEffect(
            type="buff",
            amount=int(m.group(1)),
            filter=parse_filter(m.group(2)),
            scope="own",
            condition=_cond("next_to", m.group(3)),
        ),
    ),
    (
        r"x(\d) to (.+?) if (.+?) is in play",
        lambda m: BuffEffect(
            type="buff",
            amount=0,
            factor=int(m.group(1)),
            filter=parse_filter(m.group(2)),
            scope="own",
            condition=_cond("in_play", m.group(3)),
        ),
    ),
    (
        r"x(\d) to (.+)",
        lambda m: BuffEffect(type="buff", amount=0, factor=int(m.group(1)), filter=parse_filter(m.group(2)), scope="own"),
    ),
    # debuff
    (
        r"-(\d+) to (?:the )?oppos(?:ing|ite) (?:card|gtoon|toon) if not (?:a |an )?(.+)",
        lambda m: DebuffEffect(
            type="debuff",
            amount=int(m.group(1)),
            filter=CardFilter(kind="any"),
            scope="opposite",
            exempt=parse_filter(m.group(2)),
        ),
    ),
    (
        r"-(\d+) to (?:the )?oppos(?:ing|ite) (?:card|gtoon|toon)",
        lambda m: DebuffEffect(type="debuff", amount=int(m.group(1)), filter=CardFilter(kind="any"), scope="opposite"),
    ),
    (
        r"-(\d+) to neighboring and opposite (.+)",
        lambda m: DebuffEffect(
            type="debuff", amount=int(m.group(1)), filter=parse_filter(m.group(2)), scope="neighbors_and_opposite"
        ),
    ),
    (
        r"-(\d+) to (?:each |all )?opposing (.+)",
        lambda m: DebuffEffect(type="debuff", amount=int(m.group(1)), filter=parse_filter(m.group(2)), scope="opponent"),
    ),
    (
        r"reduce all opponent(?:'s)? (?:cards|gtoons|toons) by (\d+)(?: points?)?",
        lambda m: DebuffEffect(type="debuff", amount=int(m.group(1)), filter=CardFilter(kind="any"), scope="opponent"),
    ),
    (
        r"-(\d+) to (.+)",
        lambda m: DebuffEffect(type="debuff", amount=int(m.group(1)), filter=parse_filter(m.group(2)), scope="all"),
    ),
    # plain buff last: "+X to ..." also prefixes the more specific templates above
    (
        r"\+(\d+) to (.+)",
        lambda m: BuffEffect(type="buff", amount=int(m.group(1)), filter=parse_filter(m.group(2)), scope="own"),
    ),
]

_COMPILED: list[tuple[re.Pattern[str], _Builder]] = [(re.compile(p), b) for p, b in _TEMPLATES]


def parse_clause(clause: str) -> Effect | None:
    """Parse one effect clause. Returns None for text no template recognises."""
    text = " ".join(clause.strip().lower().rstrip(".!").split())
    for pattern, build in _COMPILED:
        m = pattern.fullmatch(text)
        if m:
            return build(m)
    return None


def parse_effects(description: str) -> tuple[Effect, ...]:
    effects: list[Effect] = []
    for clause in description.split(";"):
        if not clause.strip():
            continue
        eff = parse_clause(clause)
        if eff is None:
            logger.warning("Unrecognised effect text %r; treating it as no power", clause.strip())
            continue
        effects.append(eff)
    if not effects:
        effects.append(NoPowerEffect(type="no_power"))
    return tuple(effects)
