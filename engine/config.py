import os
from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """Tuned constants for the win estimator and formation search."""
    sims: int = 350                # Monte Carlo trials per formation
    sqrt_power: float = 0.5        # diminishing returns on troop count
    target_win: float = 0.55
    coarse_step_pct: int = 5
    refine_step_pct: int = 1
    refine_radius_pct: int = 6     # +/- around the best coarse split
    scale_start: float = 1.1
    scale_step: float = 0.1
    max_scale: float = 10.0        # largest march multiplier for the required-size scan
    logistic_k: float = 3.0
    pressure_eps: float = 1e-9
    advantage_eps: float = 1e-12
    trial_seed_stride: int = 9973

    @classmethod
    def from_env(cls, prefix: str = "ENGINE_") -> "EngineConfig":
        """Defaults, with the trial count overridable through ENGINE_SIMS."""
        sims = os.getenv(prefix + "SIMS")
        if sims:
            try:
                return cls(sims=max(1, int(sims)))
            except ValueError as exc:
                raise ValueError(f"{prefix}SIMS must be an integer, got {sims!r}") from exc
        return cls()
