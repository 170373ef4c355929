import math
from typing import Optional, Tuple

from .combat import side_pressure_once
from .config import EngineConfig
from .model import (DEFAULT_CATALOG, BattleCatalog, BattleType, Formation,
                    RecommendResult, Side, round_half_up)
from .rng import battle_seed, trial_stream


def _logistic(z: float) -> float:
    try:
        return 1.0 / (1.0 + math.exp(-z))
    except OverflowError:
        return 0.0


def _advantage(p_me: float, p_en: float, eps: float) -> float:
    """Log pressure ratio; nan when the ratio is not positive (counts as a loss)."""
    den = p_en + eps
    if den == 0:
        return math.nan
    ratio = (p_me + eps) / den
    if not ratio > 0:
        return math.nan
    return math.log(ratio)


class Engine:
    """Pure, deterministic win estimator and formation optimizer."""

    def __init__(self, catalog: BattleCatalog = DEFAULT_CATALOG,
                 config: EngineConfig = EngineConfig()):
        self.catalog = catalog
        self.config = config

    def battle_type(self, battle_type_id: int) -> BattleType:
        return self.catalog.get(battle_type_id)

    def estimate_win_pct(self, me: Side, enemy: Side, battle_type_id: int,
                         sims: Optional[int] = None,
                         sqrt_power: Optional[float] = None) -> float:
        """Fraction of Monte Carlo trials won by `me`, in [0, 1]."""
        cfg = self.config
        sims = cfg.sims if sims is None else sims
        sqrt_power = cfg.sqrt_power if sqrt_power is None else sqrt_power
        if sims <= 0:
            return 0.0

        bt = self.battle_type(battle_type_id)
        seed = battle_seed(me, enemy)
        gain = cfg.logistic_k * bt.intensity

        wins = 0
        for i in range(sims):
            rng = trial_stream(seed, i, cfg.trial_seed_stride)
            # Draw order matters: me attacking, enemy attacking, then the win sample.
            p_me = side_pressure_once(me, enemy, rng, sqrt_power,
                                      bt.extra_skill_factor, cfg.pressure_eps)
            p_en = side_pressure_once(enemy, me, rng, sqrt_power,
                                      bt.extra_skill_factor, cfg.pressure_eps)
            adv = _advantage(p_me, p_en, cfg.advantage_eps)
            if rng.bernoulli(_logistic(gain * adv)):
                wins += 1
        return wins / sims

    def _score(self, my: Side, enemy: Side, battle_type_id: int,
               formation: Formation, march_size: float, sims: Optional[int]) -> float:
        """Win fraction of `my` bonuses deployed as `formation` at `march_size`."""
        candidate = my.with_troops(formation.troops_at(march_size))
        return self.estimate_win_pct(candidate, enemy, battle_type_id, sims)

    def _coarse_search(self, my: Side, enemy: Side, battle_type_id: int,
                       march_size: float, sims: Optional[int],
                       best: Tuple[float, Formation]) -> Tuple[float, Formation]:
        """Scan the whole split space on a coarse grid."""
        step = self.config.coarse_step_pct
        best_win, best_form = best
        for inf in range(0, 101, step):
            for cav in range(0, 101 - inf, step):
                form = Formation.from_split(inf, cav)
                w = self._score(my, enemy, battle_type_id, form, march_size, sims)
                # strictly greater: ties keep the earlier candidate
                if w > best_win:
                    best_win, best_form = w, form
        return best_win, best_form

    def _refine_search(self, my: Side, enemy: Side, battle_type_id: int,
                       march_size: float, sims: Optional[int],
                       best: Tuple[float, Formation]) -> Tuple[float, Formation]:
        """Rescan a fine grid around the best coarse split."""
        cfg = self.config
        best_win, best_form = best
        r = cfg.refine_radius_pct
        inf_lo, inf_hi = max(0, best_form.infantry - r), min(100, best_form.infantry + r)
        cav_lo, cav_hi = max(0, best_form.cavalry - r), min(100, best_form.cavalry + r)
        for inf in range(inf_lo, inf_hi + 1, cfg.refine_step_pct):
            for cav in range(cav_lo, cav_hi + 1, cfg.refine_step_pct):
                if inf + cav > 100:
                    continue
                form = Formation.from_split(inf, cav)
                w = self._score(my, enemy, battle_type_id, form, march_size, sims)
                if w > best_win:
                    best_win, best_form = w, form
        return best_win, best_form

    def _required_march_size(self, my: Side, enemy: Side, battle_type_id: int,
                             march_size: float, formation: Formation,
                             target_win: float, sims: Optional[int]) -> Optional[int]:
        """Smallest scaled march reaching target_win, or None within max_scale."""
        cfg = self.config
        scale = cfg.scale_start
        while scale <= cfg.max_scale:
            scaled = round_half_up(march_size * scale)
            if self._score(my, enemy, battle_type_id, formation, scaled, sims) >= target_win:
                return scaled
            scale += cfg.scale_step
        return None

    def recommend_formation(self, my: Side, enemy: Side, battle_type_id: int,
                            march_size: float, target_win: Optional[float] = None,
                            sims: Optional[int] = None) -> RecommendResult:
        """Best infantry/cavalry/archer split for `my` against `enemy`.

        A coarse 5% grid is refined at 1% around its best cell. If the best
        split still falls short of target_win the march is scaled up until it
        reaches it, giving required_march_size. None there means either the
        target is already met or it is out of reach within max_scale; compare
        win_pct with target_win to tell them apart.
        """
        target_win = self.config.target_win if target_win is None else target_win
        best = (0.0, self.catalog.default_formation(battle_type_id))

        best = self._coarse_search(my, enemy, battle_type_id, march_size, sims, best)
        best = self._refine_search(my, enemy, battle_type_id, march_size, sims, best)
        best_win, best_form = best

        required = None
        if best_win < target_win:
            required = self._required_march_size(my, enemy, battle_type_id, march_size,
                                                 best_form, target_win, sims)

        return RecommendResult(
            win_pct=best_win,
            formation=best_form,
            troops=best_form.troops_at(march_size),
            required_march_size=required,
        )


_DEFAULT_ENGINE = Engine()


def estimate_win_pct(me: Side, enemy: Side, battle_type_id: int,
                     sims: int = 350, sqrt_power: float = 0.5) -> float:
    """Win fraction using the default battle catalog."""
    return _DEFAULT_ENGINE.estimate_win_pct(me, enemy, battle_type_id, sims, sqrt_power)


def recommend_formation(my: Side, enemy: Side, battle_type_id: int,
                        march_size: float, target_win: float = 0.55) -> RecommendResult:
    """Formation search using the default battle catalog and config."""
    return _DEFAULT_ENGINE.recommend_formation(my, enemy, battle_type_id, march_size, target_win)
