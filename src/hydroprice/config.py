from dataclasses import dataclass
from pathlib import Path
from typing import Optional

MIP_BACKENDS = ("SCIP", "CBC", "SAT")
LP_BACKENDS = ("GLOP", "CLP", "PDLP")


@dataclass
class Config:

    # Planning horizon
    PERIODS: int = 24
    PERIOD_HOURS: float = 1.0

    ### SOLVER SETUP ###

    # Stage 1 (mixed-integer commitment/dispatch)
    MIP_BACKEND: str = "SCIP"
    TIME_LIMIT_SEC: float = 300.0
    MIP_GAP: float = 0.01
    MAX_ACCEPTABLE_GAP: float = 0.05  # above this a time-limited result is flagged
    NUM_THREADS: int = 1

    # Stage 2 (linear re-solve with commitment fixed)
    LP_BACKEND: str = "GLOP"
    STAGE2_TIME_LIMIT_SEC: Optional[float] = None  # None = reuse TIME_LIMIT_SEC
    ROUNDING_THRESHOLD: float = 0.5

    ### PRICING ###

    ENABLE_PRICING: bool = True  # False = single-stage solve, no duals
    ENABLE_NODAL_PRICING: bool = True

    # Objective coefficients are multiplied by this; prices are divided by it
    COST_SCALE: float = 1.0

    # Used by the model builder when a zone has no explicit deficit cost
    DEFAULT_DEFICIT_COST: float = 5000.0

    ### DIAGNOSTICS ###

    VIOLATION_TOLERANCE: float = 1e-6
    COMPUTE_IIS: bool = True  # explain an infeasible stage 1 with an IIS
    IIS_TIME_LIMIT_SEC: float = 60.0

    ### OUTPUT ###

    OUTPUT_DIR: Path = Path("outputs")
    LOG_LEVEL: str = "INFO"

    # Synthetic system generation
    SEED: Optional[int] = 7

    def validate(self):
        """
        Validate the Config object has sensible values before solving.
        """
        if self.PERIODS <= 0:
            raise ValueError("PERIODS must be > 0.")
        if self.PERIOD_HOURS <= 0.0:
            raise ValueError("PERIOD_HOURS must be > 0.")
        if self.TIME_LIMIT_SEC <= 0.0:
            raise ValueError("TIME_LIMIT_SEC must be > 0.")
        if self.STAGE2_TIME_LIMIT_SEC is not None and self.STAGE2_TIME_LIMIT_SEC <= 0.0:
            raise ValueError("STAGE2_TIME_LIMIT_SEC must be > 0 when set.")
        if self.NUM_THREADS <= 0:
            raise ValueError("NUM_THREADS must be > 0.")
        for attr in ("MIP_GAP", "MAX_ACCEPTABLE_GAP"):
            val = getattr(self, attr)
            if not (0.0 <= val < 1.0):
                raise ValueError(f"{attr} must be within [0, 1).")
        if not (0.0 < self.ROUNDING_THRESHOLD < 1.0):
            raise ValueError("ROUNDING_THRESHOLD must be within (0, 1).")
        if self.COST_SCALE <= 0.0:
            raise ValueError("COST_SCALE must be > 0.")
        if self.VIOLATION_TOLERANCE < 0.0:
            raise ValueError("VIOLATION_TOLERANCE must be non-negative.")
        if self.IIS_TIME_LIMIT_SEC <= 0.0:
            raise ValueError("IIS_TIME_LIMIT_SEC must be > 0.")
        if self.MIP_BACKEND.upper() not in MIP_BACKENDS:
            raise ValueError(f"MIP_BACKEND must be one of {MIP_BACKENDS}.")
        if self.LP_BACKEND.upper() not in LP_BACKENDS:
            raise ValueError(f"LP_BACKEND must be one of {LP_BACKENDS}.")
        if self.SEED is not None and not isinstance(self.SEED, int):
            raise ValueError("SEED must be an int or None.")

    @property
    def stage2_time_limit(self) -> float:
        if self.STAGE2_TIME_LIMIT_SEC is None:
            return self.TIME_LIMIT_SEC
        return self.STAGE2_TIME_LIMIT_SEC


cfg = Config(
    PERIODS=24,
    TIME_LIMIT_SEC=60.0,
    MIP_GAP=0.005,
    NUM_THREADS=4,
)
