import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


class TroopType(Enum):
    """Troop classes. Definition order is the iteration order used by the engine."""
    INFANTRY = "infantry"
    CAVALRY = "cavalry"
    ARCHERS = "archers"


TROOP_TYPES: Tuple[TroopType, ...] = tuple(TroopType)


def round_half_up(x: float) -> int:
    """Round to nearest integer, .5 going up (not banker's rounding)."""
    return math.floor(x + 0.5)


@dataclass(frozen=True)
class TierInput:
    tier: int  # 1..11
    tg: int    # 0..5, truegold grade


@dataclass(frozen=True)
class BonusesPct:
    """Per-troop-type stat bonuses in percent (+150 means x2.5)."""
    atk: float = 0.0
    dfn: float = 0.0
    leth: float = 0.0
    hp: float = 0.0


@dataclass(frozen=True)
class SpecialBonusesPct:
    """Side-wide buffs, and debuffs this side inflicts on its opponent."""
    squads_atk: float = 0.0
    squads_dfn: float = 0.0
    squads_leth: float = 0.0
    squads_hp: float = 0.0
    pet_atk_bonus: float = 0.0
    enemy_squads_atk: float = 0.0
    enemy_squads_dfn: float = 0.0
    enemy_leth_pen: float = 0.0
    enemy_hp_pen: float = 0.0


def _zero_troops() -> Dict[TroopType, int]:
    return {t: 0 for t in TROOP_TYPES}


def _zero_bonuses() -> Dict[TroopType, BonusesPct]:
    return {t: BonusesPct() for t in TROOP_TYPES}


@dataclass(frozen=True)
class Side:
    """One army as seen by the engine. Treat as a value: derive, never mutate."""
    troops: Mapping[TroopType, int] = field(default_factory=_zero_troops)
    bonuses: Mapping[TroopType, BonusesPct] = field(default_factory=_zero_bonuses)
    special: SpecialBonusesPct = field(default_factory=SpecialBonusesPct)
    tier: TierInput = field(default_factory=lambda: TierInput(tier=1, tg=0))

    def count(self, t: TroopType) -> int:
        return self.troops.get(t, 0) or 0

    def total(self) -> int:
        return sum(self.count(t) for t in TROOP_TYPES)

    def bonus(self, t: TroopType) -> BonusesPct:
        return self.bonuses.get(t) or BonusesPct()

    def with_troops(self, troops: Mapping[TroopType, int]) -> "Side":
        """Copy of this side with different troop counts."""
        return replace(self, troops=dict(troops))


@dataclass(frozen=True)
class Formation:
    """Integer percentage split; archers always take the remainder."""
    infantry: int
    cavalry: int
    archers: int

    @classmethod
    def from_split(cls, infantry: int, cavalry: int) -> "Formation":
        return cls(infantry=infantry, cavalry=cavalry, archers=100 - infantry - cavalry)

    def pct(self, t: TroopType) -> int:
        return getattr(self, t.value)

    def troops_at(self, march_size: float) -> Dict[TroopType, int]:
        """Absolute troop counts for a march of the given size."""
        return {t: round_half_up(march_size * (self.pct(t) / 100)) for t in TROOP_TYPES}

    def as_dict(self) -> Dict[str, int]:
        return {t.value: self.pct(t) for t in TROOP_TYPES}


@dataclass(frozen=True)
class BattleType:
    id: int
    label: str
    intensity: float
    extra_skill_factor: float
    default_formation: Formation


@dataclass(frozen=True)
class BattleCatalog:
    """Immutable table of battle types.

    Unknown ids resolve to the first entry for their modifiers, but take
    `unknown_formation` as their starting split.
    """
    types: Tuple[BattleType, ...]
    unknown_formation: Formation = Formation(60, 20, 20)

    def find(self, battle_type_id: int) -> Optional[BattleType]:
        for bt in self.types:
            if bt.id == battle_type_id:
                return bt
        return None

    def get(self, battle_type_id: int) -> BattleType:
        bt = self.find(battle_type_id)
        return bt if bt is not None else self.types[0]

    def default_formation(self, battle_type_id: int) -> Formation:
        """Starting split for the formation search, keyed on the requested id."""
        bt = self.find(battle_type_id)
        return bt.default_formation if bt is not None else self.unknown_formation

    def __iter__(self):
        return iter(self.types)


BATTLE_TYPES: Tuple[BattleType, ...] = (
    BattleType(
        id=1,
        label="Solo PvP (Attack / Defense)",
        intensity=0.95,
        extra_skill_factor=1.00,
        default_formation=Formation(50, 20, 30),
    ),
    BattleType(
        id=2,
        label="Rally Attack",
        intensity=1.05,
        extra_skill_factor=1.15,
        default_formation=Formation(50, 20, 30),
    ),
    BattleType(
        id=3,
        label="Garrison Defense",
        intensity=1.00,
        extra_skill_factor=1.12,
        default_formation=Formation(60, 20, 20),
    ),
    BattleType(
        id=4,
        label="Outpost / Sanctuary / Fortress Battle",
        intensity=1.00,
        extra_skill_factor=1.12,
        default_formation=Formation(60, 20, 20),
    ),
)

DEFAULT_CATALOG = BattleCatalog(types=BATTLE_TYPES)


@dataclass(frozen=True)
class RecommendResult:
    win_pct: float
    formation: Formation
    troops: Dict[TroopType, int]
    required_march_size: Optional[int] = None

    def as_dict(self) -> Dict:
        return {
            "win_pct": self.win_pct,
            "formation": self.formation.as_dict(),
            "troops": {t.value: n for t, n in self.troops.items()},
            "required_march_size": self.required_march_size,
        }
