"""Test scouting-report text parsing."""
import pytest
from engine.model import BonusesPct, SpecialBonusesPct, TierInput, TroopType
from engine.parsing import (build_enemy_from_manual, build_side_from_scout,
                            parse_notes_two_column, parse_scout_paste,
                            parse_stat_bonuses_only, parse_tier_string, sum_troops,
                            troops_from_manual)

INF, CAV, ARC = TroopType.INFANTRY, TroopType.CAVALRY, TroopType.ARCHERS

SCOUT_REPORT = """
Scout Report
Apex Infantry
81,791
Truegold Infantry 66,244
Truegold Cavalry 40,100
Archers
52,003
Infantry Attack +152.5%
Infantry Defense
+140%
Cavalry Lethality +98.25%
Archer Health +110%
"""

NOTES = """
Enemy Lethality Penalty
-15%
-10%
Pet Skills
Troop Buffs
Other Effects
Squads' Attack Bonus
+12.5%
+8%
"""


def test_parse_tier_string():
    assert parse_tier_string("T10 TG5") == TierInput(tier=10, tg=5)
    assert parse_tier_string("t7 tg3") == TierInput(tier=7, tg=3)
    assert parse_tier_string("TG2 T9") == TierInput(tier=9, tg=2)


def test_parse_tier_string_clamps_and_defaults():
    assert parse_tier_string("T15 TG9") == TierInput(tier=11, tg=5)
    assert parse_tier_string("T0") == TierInput(tier=1, tg=5)
    assert parse_tier_string("") == TierInput(tier=10, tg=5)


def test_parse_scout_paste_troops():
    troops, _ = parse_scout_paste(SCOUT_REPORT)
    # largest of the listed infantry tiers wins
    assert troops == {INF: 81_791, CAV: 40_100, ARC: 52_003}
    assert sum_troops(troops) == 81_791 + 40_100 + 52_003


def test_parse_stat_bonuses():
    bonuses = parse_stat_bonuses_only(SCOUT_REPORT)
    assert bonuses[INF] == BonusesPct(atk=152.5, dfn=140.0)
    assert bonuses[CAV].leth == pytest.approx(98.25)
    assert bonuses[ARC] == BonusesPct(hp=110.0)


def test_parse_empty_text():
    troops, bonuses = parse_scout_paste("")
    assert troops == {INF: 0, CAV: 0, ARC: 0}
    assert all(b == BonusesPct() for b in bonuses.values())


def test_parse_notes_two_column():
    me, enemy = parse_notes_two_column(NOTES)
    assert me.squads_atk == pytest.approx(12.5)
    assert enemy.squads_atk == pytest.approx(8.0)
    assert me.enemy_leth_pen == pytest.approx(-15.0)
    assert enemy.enemy_leth_pen == pytest.approx(-10.0)
    assert me.squads_hp == 0.0


def test_parse_notes_single_column():
    me, enemy = parse_notes_two_column("Enemy Health Penalty -5%")
    assert me.enemy_hp_pen == pytest.approx(-5.0)
    assert enemy == SpecialBonusesPct()


def test_troops_from_manual():
    troops, ratio = troops_from_manual(1000, 50, 20)
    assert troops == {INF: 500, CAV: 200, ARC: 300}
    assert ratio[ARC] == 30


def test_troops_from_manual_clamps_split():
    troops, ratio = troops_from_manual(1000, 80, 40)
    assert ratio == {INF: 80, CAV: 20, ARC: 0}
    assert troops == {INF: 800, CAV: 200, ARC: 0}

    troops, _ = troops_from_manual(-5, 50, 50)
    assert sum_troops(troops) == 0


def test_troops_from_manual_archers_absorb_rounding():
    troops, _ = troops_from_manual(1001, 33, 33)
    assert sum_troops(troops) == 1001


def test_build_side_from_scout():
    side = build_side_from_scout(SCOUT_REPORT, "T10 TG4")
    assert side.count(INF) == 81_791
    assert side.tier == TierInput(tier=10, tg=4)
    assert side.special == SpecialBonusesPct()


def test_build_enemy_from_manual():
    special = SpecialBonusesPct(enemy_squads_dfn=-10)
    side = build_enemy_from_manual("Cavalry Attack +80%", 150_000, 40, 30, "T9 TG2", special)
    assert side.troops == {INF: 60_000, CAV: 45_000, ARC: 45_000}
    assert side.bonus(CAV).atk == pytest.approx(80.0)
    assert side.special is special
    assert side.tier == TierInput(tier=9, tg=2)
