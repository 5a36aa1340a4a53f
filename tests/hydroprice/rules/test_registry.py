from __future__ import annotations

import pytest

from hydroprice.rules.base import Rule, RuleSpec
from hydroprice.rules.decision_variables import VariablesRule
from hydroprice.rules.ramp import RampRule
from hydroprice.rules.registry import (
    default_rule_specs,
    instantiate_rules,
    normalize_rule_specs,
)


class DummyRule(Rule):
    order = 5


def test_default_specs_are_fresh_copies():
    a = default_rule_specs()
    b = default_rule_specs()
    assert [s.cls for s in a] == [s.cls for s in b]
    a[0].settings["x"] = 1
    assert "x" not in b[0].settings


def test_normalize_accepts_classes_and_specs():
    specs = normalize_rule_specs([VariablesRule, RuleSpec(cls=RampRule, order=3)])
    assert [s.cls for s in specs] == [VariablesRule, RampRule]
    assert specs[1].order == 3


def test_normalize_rejects_other_objects():
    with pytest.raises(TypeError):
        normalize_rule_specs([object()])


def test_instantiate_sorts_by_order_and_skips_disabled():
    specs = [
        RuleSpec(cls=RampRule),
        RuleSpec(cls=DummyRule),
        RuleSpec(cls=VariablesRule, enabled=False),
        RuleSpec(cls=VariablesRule, order=50, settings={"tag": "late"}),
    ]
    rules = instantiate_rules(model=None, specs=specs)
    assert [type(r) for r in rules] == [DummyRule, RampRule, VariablesRule]
    assert rules[-1].order == 50
    assert rules[-1].setting("tag", None) == "late"
