from __future__ import annotations

import pytest

from hydroprice.config import Config, cfg


def test_default_config_is_valid():
    cfg.validate()
    Config().validate()


def test_stage2_time_limit_defaults_to_stage1_limit():
    c = Config(TIME_LIMIT_SEC=42.0)
    assert c.stage2_time_limit == 42.0
    c.STAGE2_TIME_LIMIT_SEC = 5.0
    assert c.stage2_time_limit == 5.0


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("PERIODS", 0, "PERIODS"),
        ("TIME_LIMIT_SEC", 0.0, "TIME_LIMIT_SEC"),
        ("MIP_GAP", 1.5, "MIP_GAP"),
        ("MAX_ACCEPTABLE_GAP", -0.1, "MAX_ACCEPTABLE_GAP"),
        ("ROUNDING_THRESHOLD", 1.0, "ROUNDING_THRESHOLD"),
        ("COST_SCALE", 0.0, "COST_SCALE"),
        ("MIP_BACKEND", "GUROBI_PLEASE", "MIP_BACKEND"),
        ("LP_BACKEND", "SCIP", "LP_BACKEND"),
        ("SEED", "seven", "SEED"),
        ("IIS_TIME_LIMIT_SEC", 0.0, "IIS_TIME_LIMIT_SEC"),
    ],
)
def test_validate_rejects_bad_values(field, value, message):
    c = Config()
    setattr(c, field, value)
    with pytest.raises(ValueError, match=message):
        c.validate()
