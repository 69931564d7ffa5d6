"""Effect resolution: turns a revealed board pair into modified points.

Order of work:

1. colour manipulation (changes how colour filters read for everything after)
2. pass 1, every non-chain effect, reading the board as it stood before the
   pass: additive deltas, then multipliers on the running value, then swaps
   (all read the values from before the first swap)
3. pass 2, chain/combo effects against the pass-1 result, iterated to a
   fixed point; chain outputs still moving at the iteration cap are dropped
4. clamp every card to >= 0
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterator
from dataclasses import dataclass

from .matching import matches, neighbor_slots
from .rolls import SeededRolls
from .state import Event, GameState, PlacedCard
from .types import (
    COLORS,
    SIDES,
    BuffEffect,
    CardDefinition,
    CardFilter,
    ChainEffect,
    ColorEffect,
    Condition,
    ConditionalBonusEffect,
    CountEffect,
    DebuffEffect,
    MultiplierEffect,
    PositionEffect,
    RandomEffect,
    ResourceEffect,
    Side,
    StealEffect,
    SwapEffect,
    UnderdogEffect,
    other_side,
)

logger = logging.getLogger(__name__)

# Board is drawn as two rows: [0][1][2][3] over [4][5][6].
CORNER_SLOTS = frozenset({0, 3, 4, 6})
CENTER_SLOTS = frozenset({1, 2, 5})

Key = tuple[Side, int]


@dataclass
class _Entry:
    side: Side
    pc: PlacedCard
    card: CardDefinition

    @property
    def key(self) -> Key:
        return (self.side, self.pc.position)

    @property
    def colors(self) -> tuple[str, ...]:
        return self.pc.effective_colors


class _Resolution:
    def __init__(self, state: GameState, rolls: SeededRolls) -> None:
        self.state = state
        self.rolls = rolls
        self.slots = state.config.board_slots
        self.entries: list[_Entry] = []
        self.by_slot: dict[Side, dict[int, _Entry]] = {side: {} for side in SIDES}
        self.deltas: dict[Key, int] = defaultdict(int)
        self.self_gain: dict[Key, int] = defaultdict(int)
        self.running: dict[Key, int] = {}
        self.events: list[Event] = []

    # board views -----------------------------------------------------

    def own(self, side: Side) -> list[_Entry]:
        return [self.by_slot[side][i] for i in sorted(self.by_slot[side])]

    def everyone(self) -> list[_Entry]:
        return self.entries

    def neighbors(self, e: _Entry) -> list[_Entry]:
        row = self.by_slot[e.side]
        return [row[i] for i in neighbor_slots(e.pc.position, self.slots) if i in row]

    def opposite(self, e: _Entry) -> _Entry | None:
        return self.by_slot[other_side(e.side)].get(e.pc.position)

    def match(self, target: _Entry, flt: CardFilter, source: _Entry) -> bool:
        if flt.other and target is source:
            return False
        return matches(target.card, target.colors, flt)

    # setup -------------------------------------------------------------

    def collect(self) -> None:
        for index in range(self.slots):
            for side in SIDES:
                pc = self.state.side(side).board[index]
                if pc is None:
                    continue
                pc.position = index
                pc.triggered = pc.fired_cancel
                pc.negative_hits = 0
                card = self.state.cards.lookup(pc.card_id)
                if card is None:
                    logger.warning("Card %s is not in the catalog; it scores nothing", pc.card_id)
                    pc.modified_points = 0
                    pc.effective_colors = ()
                    self.events.append({"type": "UNKNOWN_CARD", "side": side, "slot": index, "card_id": pc.card_id})
                    continue
                pc.modified_points = card.base_points
                pc.effective_colors = card.colors
                if pc.cancelled:
                    continue
                entry = _Entry(side=side, pc=pc, card=card)
                self.entries.append(entry)
                self.by_slot[side][index] = entry

    def effects_of(self, kind: type) -> Iterator[tuple[_Entry, int, object]]:
        for e in self.entries:
            for idx, eff in enumerate(e.card.effects):
                if isinstance(eff, kind):
                    yield e, idx, eff

    # colour manipulation ------------------------------------------------

    def apply_colors(self) -> None:
        self.state.color_conditions = dict(self.state.main_colors)
        wild: set[Key] = set()
        for e, _, eff in self.effects_of(ColorEffect):
            assert isinstance(eff, ColorEffect)
            if eff.mode == "all_colors":
                e.pc.effective_colors = COLORS
                e.pc.triggered = True
                wild.add(e.key)
        for e, _, eff in self.effects_of(ColorEffect):
            assert isinstance(eff, ColorEffect)
            if eff.mode != "convert" or eff.color_from is None or eff.color_to is None:
                continue
            for t in self.entries:
                if t.key in wild or eff.color_from not in t.colors:
                    continue
                converted = tuple(eff.color_to if c == eff.color_from else c for c in t.colors)
                t.pc.effective_colors = tuple(dict.fromkeys(converted))
                e.pc.triggered = True
        for e, _, eff in self.effects_of(ColorEffect):
            assert isinstance(eff, ColorEffect)
            if eff.mode == "change_condition" and eff.color_to is not None:
                self.state.color_conditions[e.side] = eff.color_to
                e.pc.triggered = True

    # pass 1 -------------------------------------------------------------

    def add(self, source: _Entry, target: _Entry, amount: int) -> bool:
        if amount == 0:
            return False
        if amount < 0 and target is not source and target.card.negative_immune:
            return False
        self.deltas[target.key] += amount
        if target is source:
            self.self_gain[target.key] += amount
        elif amount < 0:
            target.pc.negative_hits += 1
        source.pc.triggered = True
        return True

    def holds(self, cond: Condition, e: _Entry) -> bool:
        kind = cond.kind
        if kind in ("in_play", "all_in_play", "any_in_play"):
            if cond.scope == "own":
                pool = self.own(e.side)
            elif cond.scope == "opponent":
                pool = self.own(other_side(e.side))
            else:
                pool = self.everyone()
            found = [any(self.match(t, f, e) for t in pool) for f in cond.filters]
            return all(found) if kind != "any_in_play" else any(found)
        if kind == "next_to":
            return any(self.match(n, f, e) for n in self.neighbors(e) for f in cond.filters)
        if kind == "round2":
            return e.pc.position in self.state.config.slots_for_round(2)
        if kind == "first_slot":
            return e.pc.position == self.state.config.slots_for_round(1)[0]
        if kind == "last_slot":
            return e.pc.position == self.slots - 1

        opp = self.opposite(e)
        if opp is None:
            return False
        if kind == "opposite_is":
            return any(self.match(opp, f, e) for f in cond.filters)
        if kind == "opposite_higher":
            return opp.card.base_points > e.card.base_points
        if kind == "opposite_lower":
            return opp.card.base_points < e.card.base_points
        shared = set(opp.colors) & set(e.colors)
        if kind == "opposite_same_color":
            return bool(shared)
        if kind == "opposite_different_color":
            return not shared
        return False

    def running_totals(self) -> dict[Side, int]:
        """Points each side stands on before this pass.

        Cards from earlier rounds count with the total already scored for them;
        cards placed this round count with their base points.
        """
        earlier: set[int] = set()
        for round_no in range(1, self.state.round_no):
            earlier.update(self.state.config.slots_for_round(round_no))
        return {
            side: self.state.side(side).total_points
            + sum(e.card.base_points for e in self.own(side) if e.pc.position not in earlier)
            for side in SIDES
        }

    def pass_one(self) -> list[tuple[_Entry, int, ChainEffect]]:
        totals = self.running_totals()
        self_mults: list[tuple[_Entry, int]] = []
        other_mults: list[tuple[_Entry, _Entry, int]] = []
        swaps: list[tuple[_Entry, SwapEffect]] = []
        chains: list[tuple[_Entry, int, ChainEffect]] = []

        for e in self.entries:
            enemy = other_side(e.side)
            for idx, eff in enumerate(e.card.effects):
                if isinstance(eff, ConditionalBonusEffect):
                    if self.holds(eff.condition, e):
                        self.add(e, e, eff.amount)

                elif isinstance(eff, MultiplierEffect):
                    if self.holds(eff.condition, e):
                        self_mults.append((e, eff.factor))

                elif isinstance(eff, CountEffect):
                    if eff.scope == "neighbors":
                        pool = self.neighbors(e)
                    elif eff.scope == "own":
                        pool = self.own(e.side)
                    elif eff.scope == "opponent":
                        pool = self.own(enemy)
                    else:
                        pool = self.everyone()
                    count = sum(1 for t in pool if self.match(t, eff.filter, e))
                    self.add(e, e, eff.amount * count)

                elif isinstance(eff, BuffEffect):
                    if eff.condition is not None and not self.holds(eff.condition, e):
                        continue
                    pool = self.neighbors(e) if eff.scope == "neighbors" else self.own(e.side)
                    for t in pool:
                        if t is e or not self.match(t, eff.filter, e):
                            continue
                        if eff.factor > 1:
                            other_mults.append((e, t, eff.factor))
                        else:
                            self.add(e, t, eff.amount)

                elif isinstance(eff, DebuffEffect):
                    if eff.scope == "opposite":
                        opp = self.opposite(e)
                        pool = [opp] if opp is not None else []
                    elif eff.scope == "opponent":
                        pool = self.own(enemy)
                    elif eff.scope == "neighbors_and_opposite":
                        opp = self.opposite(e)
                        pool = self.neighbors(e) + ([opp] if opp is not None else [])
                    else:
                        pool = [t for t in self.everyone() if t is not e]
                    for t in pool:
                        if not self.match(t, eff.filter, e):
                            continue
                        if eff.exempt is not None and self.match(t, eff.exempt, e):
                            continue
                        self.add(e, t, -eff.amount)

                elif isinstance(eff, StealEffect):
                    if eff.scope == "opposite":
                        opp = self.opposite(e)
                        pool = [opp] if opp is not None else []
                    else:
                        pool = self.own(enemy)
                    for t in pool:
                        if self.add(e, t, -eff.amount):
                            self.add(e, e, eff.amount)

                elif isinstance(eff, SwapEffect):
                    swaps.append((e, eff))

                elif isinstance(eff, PositionEffect):
                    pos = e.pc.position
                    if eff.where == "corner":
                        self.add(e, e, eff.amount if pos in CORNER_SLOTS else 0)
                    elif eff.where == "center":
                        self.add(e, e, eff.amount if pos in CENTER_SLOTS else 0)
                    elif eff.where == "slot":
                        self.add(e, e, eff.amount if pos == eff.slot else 0)
                    else:
                        board = self.state.side(e.side).board
                        filled = sum(1 for i in neighbor_slots(pos, self.slots) if board[i] is not None)
                        self.add(e, e, eff.amount * filled)

                elif isinstance(eff, UnderdogEffect):
                    if eff.mode == "behind":
                        applies = totals[e.side] < totals[enemy]
                    else:
                        applies = len(self.own(e.side)) == 1
                    if applies:
                        self.add(e, e, eff.amount)
                        if eff.factor > 1:
                            self_mults.append((e, eff.factor))

                elif isinstance(eff, RandomEffect):
                    roll = self.rolls.choice(eff.outcomes, e.side, e.pc.position, idx)
                    self.events.append(
                        {"type": "RANDOM_ROLL", "side": e.side, "slot": e.pc.position, "value": roll}
                    )
                    self.add(e, e, roll)

                elif isinstance(eff, ResourceEffect):
                    whose = e.side if eff.whose == "own" else enemy
                    self.add(e, e, eff.amount * len(self.state.side(whose).hand))

                elif isinstance(eff, ChainEffect):
                    chains.append((e, idx, eff))

        for e in self.entries:
            self.running[e.key] = e.card.base_points + self.deltas[e.key]

        for e, factor in self_mults:
            before = self.running[e.key]
            self.running[e.key] = before * factor
            self.self_gain[e.key] += self.running[e.key] - before
            e.pc.triggered = True
        for source, t, factor in other_mults:
            self.running[t.key] *= factor
            source.pc.triggered = True

        self.apply_swaps(swaps)
        return chains

    def apply_swaps(self, swaps: list[tuple[_Entry, SwapEffect]]) -> None:
        """Every swap reads the values held before the first swap ran.

        A card's own swap decides its value; a card picked as a partner by
        several swaps takes the value from the earliest one.
        """
        before = dict(self.running)
        gains = dict(self.self_gain)
        swapped: dict[Key, int] = {}
        partnered: dict[Key, int] = {}
        for e, eff in swaps:
            if eff.mode == "neighbor_points":
                partners = [n for n in self.neighbors(e) if self.match(n, eff.filter, e)]
                if not partners:
                    continue
                n = partners[0]
                swapped[e.key] = before[n.key]
                partnered.setdefault(n.key, before[e.key])
                e.pc.triggered = True
        for key, value in partnered.items():
            swapped.setdefault(key, value)
        self.running.update(swapped)

        for e, eff in swaps:
            if eff.mode == "copy_base":
                donors = [t for t in self.own(e.side) if t is not e and self.match(t, eff.filter, e)]
                if not donors:
                    continue
                donor = max(donors, key=lambda t: (t.card.base_points, -t.pc.position))
                diff = donor.card.base_points - e.card.base_points
                self.running[e.key] += diff
                self.self_gain[e.key] += diff
                e.pc.triggered = True
            elif eff.mode == "mirror":
                opp = self.opposite(e)
                if opp is None:
                    continue
                gain = gains.get(opp.key, 0)
                if gain:
                    self.running[e.key] += gain
                    self.self_gain[e.key] += gain
                    e.pc.triggered = True

    # pass 2 -------------------------------------------------------------

    def chain_outputs(
        self,
        chains: list[tuple[_Entry, int, ChainEffect]],
        previous: dict[tuple[Key, int], tuple[tuple[Key, int], ...]],
    ) -> dict[tuple[Key, int], tuple[tuple[Key, int], ...]]:
        triggered = {e.key: e.pc.triggered for e in self.entries}
        gain = dict(self.self_gain)
        for (caster, _), outs in previous.items():
            for target, amount in outs:
                if amount:
                    triggered[caster] = True
                if target == caster:
                    gain[caster] = gain.get(caster, 0) + amount

        result: dict[tuple[Key, int], tuple[tuple[Key, int], ...]] = {}
        for e, idx, eff in chains:
            outs: list[tuple[Key, int]] = []
            if eff.mode == "per_triggered":
                count = sum(1 for t in self.own(e.side) if t is not e and triggered.get(t.key))
                outs.append((e.key, eff.amount * count))
            elif eff.mode == "per_negative":
                count = sum(t.pc.negative_hits for t in self.own(e.side))
                outs.append((e.key, eff.amount * count))
            else:
                row = self.by_slot[e.side]
                pos = e.pc.position
                if eff.mode == "double_left":
                    targets = [row[pos - 1]] if pos - 1 in row else []
                elif eff.mode == "double_right":
                    targets = [row[pos + 1]] if pos + 1 in row else []
                else:
                    targets = self.neighbors(e)
                for t in targets:
                    outs.append((t.key, gain.get(t.key, 0)))
            result[(e.key, idx)] = tuple((k, a) for k, a in outs if a)
        return result

    def pass_two(self, chains: list[tuple[_Entry, int, ChainEffect]]) -> None:
        if not chains:
            return
        cap = max(1, self.state.config.chain_iterations)
        previous: dict[tuple[Key, int], tuple[tuple[Key, int], ...]] = {}
        current = self.chain_outputs(chains, previous)
        for _ in range(cap - 1):
            if current == previous:
                break
            previous, current = current, self.chain_outputs(chains, current)

        by_key = {e.key: e for e in self.entries}
        for (caster, idx), outs in current.items():
            if outs and previous.get((caster, idx)) != outs:
                self.events.append({"type": "CHAIN_UNRESOLVED", "side": caster[0], "slot": caster[1], "effect": idx})
                continue
            for target, amount in outs:
                self.running[target] += amount
                by_key[caster].pc.triggered = True

    # finish -------------------------------------------------------------

    def write_back(self) -> None:
        for e in self.entries:
            e.pc.modified_points = max(0, self.running[e.key])
            self.events.append(
                {
                    "type": "CARD_RESOLVED",
                    "side": e.side,
                    "slot": e.pc.position,
                    "card_id": e.pc.card_id,
                    "points": e.pc.modified_points,
                }
            )


def apply_effects(state: GameState, rolls: SeededRolls | None = None) -> list[Event]:
    """Recompute `modified_points` for every placed card on both boards.

    Cancellation flags must already be set. Cancelled cards keep their base
    points but are inert; cards missing from the catalog score 0.
    """
    res = _Resolution(state, rolls or SeededRolls(state.seed))
    res.collect()
    res.apply_colors()
    chains = res.pass_one()
    res.pass_two(chains)
    res.write_back()
    state.event_log.extend(res.events)
    return res.events
