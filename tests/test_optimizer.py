"""Test the formation search and required march size scan."""
import pytest
from engine.config import EngineConfig
from engine.engine import Engine, recommend_formation
from engine.model import (BonusesPct, Formation, Side, SpecialBonusesPct, TierInput,
                          TroopType, round_half_up)

INF, CAV, ARC = TroopType.INFANTRY, TroopType.CAVALRY, TroopType.ARCHERS


def make_side(inf=0, cav=0, arch=0, atk=0.0, leth=0.0, tier=1, tg=0) -> Side:
    return Side(
        troops={INF: inf, CAV: cav, ARC: arch},
        bonuses={t: BonusesPct(atk=atk, leth=leth) for t in TroopType},
        special=SpecialBonusesPct(),
        tier=TierInput(tier=tier, tg=tg),
    )


@pytest.fixture
def engine() -> Engine:
    """Engine with a reduced trial count so full grid searches stay quick."""
    return Engine(config=EngineConfig(sims=60))


def assert_valid(result, march_size):
    f = result.formation
    assert f.infantry + f.cavalry + f.archers == 100
    for pct in (f.infantry, f.cavalry, f.archers):
        assert 0 <= pct <= 100
    assert 0.0 <= result.win_pct <= 1.0
    assert result.troops == f.troops_at(march_size)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.4999) == 2
    assert round_half_up(0) == 0


def test_formation_troops_at():
    f = Formation.from_split(50, 20)
    assert f.archers == 30
    assert f.troops_at(1001) == {INF: 501, CAV: 200, ARC: 300}
    assert f.as_dict() == {"infantry": 50, "cavalry": 20, "archers": 30}


def test_with_troops_leaves_original_untouched():
    my = make_side(10, 10, 10, atk=50)
    derived = my.with_troops({INF: 1, CAV: 2, ARC: 3})
    assert my.count(INF) == 10
    assert derived.count(ARC) == 3
    assert derived.bonuses is my.bonuses
    assert derived.tier == my.tier


def test_target_met_needs_no_scaling(engine):
    """A clearly stronger army meets the target at its own size."""
    my = make_side(atk=150, leth=150, tier=10, tg=5)
    enemy = make_side(5000, 2000, 3000)
    result = engine.recommend_formation(my, enemy, 1, march_size=10_000)
    assert_valid(result, 10_000)
    assert result.win_pct >= 0.55
    assert result.required_march_size is None


def test_unreachable_target_gives_none(engine):
    """A hopelessly weaker army does not reach the target within 10x."""
    my = make_side(atk=-90, leth=-90)
    enemy = make_side(50_000, 20_000, 30_000)
    result = engine.recommend_formation(my, enemy, 3, march_size=10_000)
    assert_valid(result, 10_000)
    assert result.win_pct < 0.55
    assert result.required_march_size is None


def test_required_march_size_reaches_target(engine):
    my = make_side()
    enemy = make_side(50_000, 20_000, 30_000)
    result = engine.recommend_formation(my, enemy, 1, march_size=30_000)
    assert_valid(result, 30_000)
    assert result.win_pct < 0.55
    required = result.required_march_size
    assert required is not None
    assert 30_000 < required <= 300_000

    at_required = my.with_troops(result.formation.troops_at(required))
    assert engine.estimate_win_pct(at_required, enemy, 1) >= 0.55


def test_custom_target_win(engine):
    my = make_side()
    enemy = make_side(50_000, 20_000, 30_000)
    low = engine.recommend_formation(my, enemy, 1, march_size=30_000, target_win=0.0)
    assert low.required_march_size is None


@pytest.mark.parametrize("battle_type_id, expected", [
    (1, Formation(50, 20, 30)),
    (2, Formation(50, 20, 30)),
    (3, Formation(60, 20, 20)),
    (4, Formation(60, 20, 20)),
    (99, Formation(60, 20, 20)),
])
def test_default_formation_survives_all_zero_grid(battle_type_id, expected):
    """With every candidate scoring 0 the requested id's default split is kept."""
    engine = Engine(config=EngineConfig(sims=5))
    enemy = make_side(50_000, 20_000, 30_000)
    result = engine.recommend_formation(make_side(), enemy, battle_type_id, march_size=0)
    assert result.win_pct == 0.0
    assert result.formation == expected
    assert result.required_march_size is None


def test_known_recommendation():
    """Pinned result of the default engine; any change to draws or search order shows here."""
    my = make_side(tier=8, tg=3)
    enemy = make_side(4000, 3500, 2500, tier=7, tg=3)
    result = recommend_formation(my, enemy, 2, 6000)
    assert result.win_pct == 0.37714285714285717
    assert result.formation == Formation(23, 35, 42)
    assert result.required_march_size == 10200


def test_zero_march_against_empty_enemy():
    """Zero troops everywhere: every trial is a coin flip and scaling 0 stays 0."""
    result = recommend_formation(make_side(), make_side(), 1, march_size=0)
    assert_valid(result, 0)
    assert 0.35 <= result.win_pct <= 0.65
    assert result.troops == {INF: 0, CAV: 0, ARC: 0}
    assert result.required_march_size is None


def test_search_is_deterministic(engine):
    my = make_side(tier=8, tg=3)
    enemy = make_side(40_000, 35_000, 25_000, tier=7, tg=3)
    a = engine.recommend_formation(my, enemy, 2, march_size=60_000)
    b = engine.recommend_formation(my, enemy, 2, march_size=60_000)
    assert a == b


def test_result_as_dict():
    engine = Engine(config=EngineConfig(sims=5))
    result = engine.recommend_formation(make_side(), make_side(100, 100, 100), 1, march_size=300)
    data = result.as_dict()
    assert set(data) == {"win_pct", "formation", "troops", "required_march_size"}
    assert sum(data["formation"].values()) == 100
    assert set(data["troops"]) == {"infantry", "cavalry", "archers"}
