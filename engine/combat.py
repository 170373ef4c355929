import math
from typing import Dict, NamedTuple

import numpy as np

from .model import SpecialBonusesPct, Side, TierInput, TroopType, TROOP_TYPES

INF, CAV, ARC = TroopType.INFANTRY, TroopType.CAVALRY, TroopType.ARCHERS

# Rows attack, columns defend, both in TROOP_TYPES order.
# Infantry > Cavalry > Archers > Infantry; stats still dominate.
MATCHUP = np.array([
    [1.00, 1.12, 0.95],
    [0.95, 1.00, 1.12],
    [1.12, 0.95, 1.00],
])
MATCHUP.setflags(write=False)

_INDEX = {t: i for i, t in enumerate(TROOP_TYPES)}


def matchup(attacker: TroopType, defender: TroopType) -> float:
    """Effectiveness multiplier of attacker type against defender type."""
    return float(MATCHUP[_INDEX[attacker], _INDEX[defender]])


def matchup_row(attacker: TroopType) -> Dict[TroopType, float]:
    return dict(zip(TROOP_TYPES, MATCHUP[_INDEX[attacker]].tolist()))


_ROWS = {t: matchup_row(t) for t in TROOP_TYPES}


class Stats(NamedTuple):
    atk: float
    dfn: float
    leth: float
    hp: float


class AbilityRoll(NamedTuple):
    dmg_mult: float = 1.0
    tank_mult: float = 1.0
    backline_shift: float = 0.0


def unit_stats(side: Side, t: TroopType) -> Stats:
    """Effective multipliers of one troop type, with the side's own buffs."""
    b = side.bonus(t)
    s = side.special
    return Stats(
        atk=(1 + b.atk / 100) * (1 + s.squads_atk / 100) * (1 + s.pet_atk_bonus / 100),
        dfn=(1 + b.dfn / 100) * (1 + s.squads_dfn / 100),
        leth=(1 + b.leth / 100) * (1 + s.squads_leth / 100),
        hp=(1 + b.hp / 100) * (1 + s.squads_hp / 100),
    )


def apply_debuffs(attacker: SpecialBonusesPct, defender: Stats) -> Stats:
    """Defender stats as seen by an attacker carrying the given debuffs.

    enemy_squads_atk lands on the defender's attack. Penalties only ever
    reduce: the stored sign is ignored and the magnitude is used.
    """
    return Stats(
        atk=defender.atk * (1 + attacker.enemy_squads_atk / 100),
        dfn=defender.dfn * (1 + attacker.enemy_squads_dfn / 100),
        leth=defender.leth * (1 - abs(attacker.enemy_leth_pen) / 100),
        hp=defender.hp * (1 - abs(attacker.enemy_hp_pen) / 100),
    )


def roll_abilities(t: TroopType, tier: TierInput, rng) -> AbilityRoll:
    """Roll tier/TG gated skills for one troop type.

    Draws are taken in a fixed order and only for gates that are open, so the
    number consumed per call depends on type, tier and tg.
    """
    dmg = 1.0
    tank = 1.0
    backline = 0.0

    # Infantry TG3: shield, small mitigation
    if t is INF and tier.tg >= 3:
        if rng.random() < 0.25:
            tank *= 1.06

    # Cavalry T7: strikes the backline, shifts targeting toward archers
    if t is CAV and tier.tier >= 7:
        if rng.random() < 0.20:
            backline += 0.25

    # Cavalry TG3: Assault Lance
    if t is CAV and tier.tg >= 3:
        if rng.random() < 0.10:
            dmg *= 2.0

    # Archers T7: Volley
    if t is ARC and tier.tier >= 7:
        if rng.random() < 0.10:
            dmg *= 2.0

    # Archers TG3: Howling Wind
    if t is ARC and tier.tg >= 3:
        if rng.random() < 0.20:
            dmg *= 1.5

    return AbilityRoll(dmg, tank, backline)


def kills_pressure(n: float, atk: float, leth: float, dfn: float, hp: float,
                   dmg_mult: float, tank_mult: float, sqrt_power: float,
                   eps: float = 1e-9) -> float:
    """Offense-vs-defense score of n troops with diminishing returns on n."""
    if n <= 0:
        return 0.0
    denom = max(dfn * hp * tank_mult, eps)
    try:
        n = float(n)
    except OverflowError:
        n = math.inf
    return n ** sqrt_power * (atk * leth) * dmg_mult / denom


def troop_ratios(side: Side) -> Dict[TroopType, float]:
    """Share of each type in the side's total; even split for an empty side."""
    total = side.total()
    if total <= 0:
        return {t: 1 / 3 for t in TROOP_TYPES}
    return {t: side.count(t) / total for t in TROOP_TYPES}


def side_pressure_once(att: Side, dfd: Side, rng, sqrt_power: float,
                       skill_factor: float, eps: float = 1e-9) -> float:
    """Total pressure att puts on dfd in one trial."""
    if att.total() <= 0:
        return 0.0

    ratios = troop_ratios(dfd)
    defense = {t: apply_debuffs(att.special, unit_stats(dfd, t)) for t in TROOP_TYPES}

    total = 0.0
    for t in TROOP_TYPES:
        n = att.count(t)
        if n <= 0:
            continue

        own = unit_stats(att, t)
        proc = roll_abilities(t, att.tier, rng)
        dmg_mult = proc.dmg_mult * skill_factor

        row = _ROWS[t]
        w = {target: ratios[target] * row[target] for target in TROOP_TYPES}

        if t is CAV and proc.backline_shift > 0:
            take = min(w[INF], proc.backline_shift)
            w[INF] -= take
            w[ARC] += take

        wsum = w[INF] + w[CAV] + w[ARC]
        if wsum <= 0:
            continue

        k = {
            target: kills_pressure(n, own.atk, own.leth, defense[target].dfn, defense[target].hp,
                                   dmg_mult, proc.tank_mult, sqrt_power, eps)
            for target in TROOP_TYPES
        }
        total += (w[INF] / wsum) * k[INF] + (w[CAV] / wsum) * k[CAV] + (w[ARC] / wsum) * k[ARC]

    return total
