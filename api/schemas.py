from dataclasses import asdict
from typing import Dict, Literal, Optional
from pydantic import BaseModel, Field, field_validator

from engine.model import (BonusesPct, RecommendResult, Side, SpecialBonusesPct,
                          TierInput, TroopType)


MAX_TROOPS = 10 ** 15


class TroopsIn(BaseModel):
    """Troop counts per type."""
    infantry: int = Field(default=0, ge=0, le=MAX_TROOPS)
    cavalry: int = Field(default=0, ge=0, le=MAX_TROOPS)
    archers: int = Field(default=0, ge=0, le=MAX_TROOPS)


class BonusesIn(BaseModel):
    """Stat bonuses in percent; negative values are debuffs."""
    atk: float = 0.0
    dfn: float = 0.0
    leth: float = 0.0
    hp: float = 0.0


class SpecialIn(BaseModel):
    """Side-wide buffs and the debuffs this side inflicts."""
    squads_atk: float = 0.0
    squads_dfn: float = 0.0
    squads_leth: float = 0.0
    squads_hp: float = 0.0
    pet_atk_bonus: float = 0.0
    enemy_squads_atk: float = 0.0
    enemy_squads_dfn: float = 0.0
    enemy_leth_pen: float = 0.0
    enemy_hp_pen: float = 0.0


class TierIn(BaseModel):
    """Tier and truegold grade, clamped into range."""
    tier: int = 10
    tg: int = 5

    @field_validator("tier")
    @classmethod
    def _clamp_tier(cls, v: int) -> int:
        return max(1, min(11, v))

    @field_validator("tg")
    @classmethod
    def _clamp_tg(cls, v: int) -> int:
        return max(0, min(5, v))


class SideIn(BaseModel):
    """One army."""
    troops: TroopsIn = Field(default_factory=TroopsIn)
    bonuses: Dict[Literal["infantry", "cavalry", "archers"], BonusesIn] = Field(default_factory=dict)
    special: SpecialIn = Field(default_factory=SpecialIn)
    tier: TierIn = Field(default_factory=TierIn)

    def to_side(self) -> Side:
        return Side(
            troops={t: getattr(self.troops, t.value) for t in TroopType},
            bonuses={t: BonusesPct(**self.bonuses.get(t.value, BonusesIn()).model_dump())
                     for t in TroopType},
            special=SpecialBonusesPct(**self.special.model_dump()),
            tier=TierInput(tier=self.tier.tier, tg=self.tier.tg),
        )

    @classmethod
    def from_side(cls, side: Side) -> "SideIn":
        return cls(
            troops=TroopsIn(**{t.value: side.count(t) for t in TroopType}),
            bonuses={t.value: BonusesIn(**asdict(side.bonus(t))) for t in TroopType},
            special=SpecialIn(**asdict(side.special)),
            tier=TierIn(tier=side.tier.tier, tg=side.tier.tg),
        )


class EstimateRequest(BaseModel):
    """Win estimate request schema."""
    me: SideIn
    enemy: SideIn
    battle_type_id: int = 1
    sims: Optional[int] = Field(default=None, ge=1)


class EstimateResponse(BaseModel):
    win_pct: float


class RecommendRequest(BaseModel):
    """Formation search request schema."""
    my: SideIn
    enemy: SideIn
    battle_type_id: int = 1
    march_size: int = Field(ge=0)
    target_win: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    sims: Optional[int] = Field(default=None, ge=1)


class RecommendOut(BaseModel):
    win_pct: float
    formation: Dict[str, int]
    troops: Dict[str, int]
    required_march_size: Optional[int] = None

    @classmethod
    def from_result(cls, result: RecommendResult) -> "RecommendOut":
        return cls(**result.as_dict())


class JobResponse(BaseModel):
    """Formation search job status."""
    job_id: str
    status: Literal["queued", "running", "done", "failed"]
    result: Optional[RecommendOut] = None
    error: Optional[str] = None


class ScoutRequest(BaseModel):
    """Scouting report text to parse into a side."""
    scout_text: str
    tier_text: str = ""
    notes_text: Optional[str] = None


class EventsResponse(BaseModel):
    """Events response schema."""
    next_offset: int
    events: list[dict]
