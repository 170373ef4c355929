"""Turn pasted scouting-report text into engine Sides.

Reports come from the game UI copied as plain text (or OCR output), one
label or value per line. Matching is by lower-cased substring, numbers are
taken from the label line or the one right after it.
"""
import re
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from .model import (BonusesPct, Side, SpecialBonusesPct, TierInput, TroopType,
                    TROOP_TYPES, round_half_up)

_NUMBER_TOKEN = re.compile(r"[-+]?\d[\d,]*\.?\d*\s*%?")
_INT_COMMAS = re.compile(r"\d[\d,]*")
_PCT = re.compile(r"[-+]?\d+\.?\d*")
_TIER = re.compile(r"t\s*(\d+)", re.IGNORECASE)
_TG = re.compile(r"tg\s*(\d+)", re.IGNORECASE)

DEFAULT_TIER = 10
DEFAULT_TG = 5

SPECIAL_ALIASES: Dict[str, List[str]] = {
    "squads_atk": ["squads' attack bonus", "squads attack bonus"],
    "squads_dfn": ["squads' defense bonus", "squads defense bonus"],
    "squads_leth": ["squads' lethality bonus", "squads lethality bonus"],
    "squads_hp": ["squads' health bonus", "squads health bonus"],
    "enemy_squads_atk": ["enemy squads' attack", "enemy squads attack"],
    "enemy_squads_dfn": ["enemy squads' defense", "enemy squads defense"],
    "enemy_leth_pen": ["enemy lethality penalty"],
    "enemy_hp_pen": ["enemy health penalty"],
    "pet_atk_bonus": ["attack bonus (pet skill)", "attack bonus pet skill"],
}

STAT_ALIASES: Dict[Tuple[TroopType, str], List[str]] = {
    (TroopType.INFANTRY, "atk"): ["infantry attack"],
    (TroopType.INFANTRY, "dfn"): ["infantry defense"],
    (TroopType.INFANTRY, "leth"): ["infantry lethality"],
    (TroopType.INFANTRY, "hp"): ["infantry health"],
    (TroopType.CAVALRY, "atk"): ["cavalry attack"],
    (TroopType.CAVALRY, "dfn"): ["cavalry defense"],
    (TroopType.CAVALRY, "leth"): ["cavalry lethality"],
    (TroopType.CAVALRY, "hp"): ["cavalry health"],
    (TroopType.ARCHERS, "atk"): ["archer attack", "archers attack"],
    (TroopType.ARCHERS, "dfn"): ["archer defense", "archers defense"],
    (TroopType.ARCHERS, "leth"): ["archer lethality", "archers lethality"],
    (TroopType.ARCHERS, "hp"): ["archer health", "archers health"],
}

# Substring that marks a troop-count line for each type
TROOP_KEYWORDS: Dict[TroopType, str] = {
    TroopType.INFANTRY: "infantry",
    TroopType.CAVALRY: "cavalry",
    TroopType.ARCHERS: "archer",
}


def _lines(text: str) -> List[str]:
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def _number_token(line: str) -> Optional[str]:
    m = _NUMBER_TOKEN.search(line)
    return m.group(0) if m else None


def _int_commas(tok: Optional[str]) -> Optional[int]:
    if not tok:
        return None
    m = _INT_COMMAS.search(tok)
    return int(m.group(0).replace(",", "")) if m else None


def _pct(tok: Optional[str]) -> Optional[float]:
    if not tok:
        return None
    m = _PCT.search(tok)
    return float(m.group(0)) if m else None


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def sum_troops(troops: Dict[TroopType, int]) -> int:
    return sum(troops.get(t, 0) or 0 for t in TROOP_TYPES)


def blank_special() -> SpecialBonusesPct:
    return SpecialBonusesPct()


def parse_tier_string(text: str) -> TierInput:
    """Read "T10 TG5" style tier text, clamped to the valid ranges."""
    t = _TIER.search(text or "")
    g = _TG.search(text or "")
    return TierInput(
        tier=int(_clamp(int(t.group(1)), 1, 11)) if t else DEFAULT_TIER,
        tg=int(_clamp(int(g.group(1)), 0, 5)) if g else DEFAULT_TG,
    )


def parse_stat_bonuses_only(text: str) -> Dict[TroopType, BonusesPct]:
    """Per-type stat bonuses, for reports that carry no troop lines."""
    lines = _lines(text)
    low = [line.lower() for line in lines]
    found: Dict[TroopType, Dict[str, float]] = {t: {} for t in TROOP_TYPES}

    for i, line in enumerate(low):
        for (troop, stat), aliases in STAT_ALIASES.items():
            if not any(a in line for a in aliases):
                continue
            pct = _pct(_number_token(lines[i]))
            if pct is None and i + 1 < len(lines):
                pct = _pct(_number_token(lines[i + 1]))
            if pct is not None:
                found[troop][stat] = pct

    return {t: BonusesPct(**found[t]) for t in TROOP_TYPES}


def parse_scout_paste(text: str) -> Tuple[Dict[TroopType, int], Dict[TroopType, BonusesPct]]:
    """Troop counts and stat bonuses from a full scouting report.

    Troop lines look like "Truegold Infantry 66,244" or "Apex Infantry"
    followed by "81,791". Several tiers of one type can be listed; the
    largest count wins.
    """
    lines = _lines(text)
    low = [line.lower() for line in lines]
    troops = {t: 0 for t in TROOP_TYPES}

    for i, line in enumerate(low):
        val = _int_commas(_number_token(lines[i]))
        if val is None and i + 1 < len(lines):
            val = _int_commas(_number_token(lines[i + 1]))
        if val is None:
            continue
        for troop, keyword in TROOP_KEYWORDS.items():
            if keyword in line:
                troops[troop] = max(troops[troop], val)

    return troops, parse_stat_bonuses_only(text)


def parse_notes_two_column(text: str) -> Tuple[SpecialBonusesPct, SpecialBonusesPct]:
    """Special bonuses from the battle notes: left column is us, right is the enemy."""
    lines = _lines(text)
    low = [line.lower() for line in lines]
    me: Dict[str, float] = {}
    enemy: Dict[str, float] = {}

    def pct_pair_nearby(idx: int) -> Tuple[Optional[float], Optional[float]]:
        toks: List[float] = []
        for j in range(max(0, idx - 3), min(len(lines), idx + 10)):
            tok = _number_token(lines[j])
            if tok and "%" in tok:
                p = _pct(tok)
                if p is not None:
                    toks.append(p)
        if len(toks) >= 2:
            return toks[0], toks[1]
        if len(toks) == 1:
            return toks[0], None
        return None, None

    for i, line in enumerate(low):
        for key, aliases in SPECIAL_ALIASES.items():
            if any(a in line for a in aliases):
                left, right = pct_pair_nearby(i)
                if left is not None:
                    me[key] = left
                if right is not None:
                    enemy[key] = right

    return replace(blank_special(), **me), replace(blank_special(), **enemy)


def troops_from_manual(total: float, inf_pct: float, cav_pct: float) -> Tuple[Dict[TroopType, int], Dict[TroopType, float]]:
    """Troop counts from a total and a split; archers absorb the rounding."""
    total = max(0, int(total or 0))
    inf = _clamp(inf_pct or 0, 0, 100)
    cav = _clamp(cav_pct or 0, 0, 100 - inf)
    arch = _clamp(100 - inf - cav, 0, 100)

    i = round_half_up(total * (inf / 100))
    c = round_half_up(total * (cav / 100))
    troops = {
        TroopType.INFANTRY: i,
        TroopType.CAVALRY: c,
        TroopType.ARCHERS: total - i - c,
    }
    ratio = {TroopType.INFANTRY: inf, TroopType.CAVALRY: cav, TroopType.ARCHERS: arch}
    return troops, ratio


def build_side_from_scout(scout_text: str, tier_text: str,
                          special: Optional[SpecialBonusesPct] = None) -> Side:
    troops, bonuses = parse_scout_paste(scout_text)
    return Side(
        troops=troops,
        bonuses=bonuses,
        special=special or blank_special(),
        tier=parse_tier_string(tier_text),
    )


def build_enemy_from_manual(stat_bonuses_text: str, total: float, inf_pct: float,
                            cav_pct: float, tier_text: str,
                            special: Optional[SpecialBonusesPct] = None) -> Side:
    """Side for reinforcements, where only stats and a manual split are known."""
    troops, _ = troops_from_manual(total, inf_pct, cav_pct)
    return Side(
        troops=troops,
        bonuses=parse_stat_bonuses_only(stat_bonuses_text),
        special=special or blank_special(),
        tier=parse_tier_string(tier_text),
    )

