from __future__ import annotations

from typing import Sequence, Tuple, Type

from hydroprice.rules.base import Rule, RuleSpec
from hydroprice.rules.decision_variables import VariablesRule
from hydroprice.rules.hydro import HydroRule
from hydroprice.rules.ramp import RampRule
from hydroprice.rules.submarket_balance import SubmarketBalanceRule
from hydroprice.rules.thermal_commitment import ThermalCommitmentRule

RuleTemplate = Tuple[Type[Rule], int, dict[str, float]]

VARIABLES_RULE_TEMPLATE: RuleTemplate = (VariablesRule, 0, {})
THERMAL_COMMITMENT_RULE_TEMPLATE: RuleTemplate = (ThermalCommitmentRule, 20, {})
RAMP_RULE_TEMPLATE: RuleTemplate = (RampRule, 30, {})
HYDRO_RULE_TEMPLATE: RuleTemplate = (HydroRule, 40, {})
SUBMARKET_BALANCE_RULE_TEMPLATE: RuleTemplate = (SubmarketBalanceRule, 60, {})

_DEFAULT_RULE_TEMPLATES: list[RuleTemplate] = [
    VARIABLES_RULE_TEMPLATE,
    THERMAL_COMMITMENT_RULE_TEMPLATE,
    RAMP_RULE_TEMPLATE,
    HYDRO_RULE_TEMPLATE,
    SUBMARKET_BALANCE_RULE_TEMPLATE,
]


def default_rule_specs() -> list[RuleSpec]:
    """Return fresh copies of the default `RuleSpec` entries."""
    return [
        RuleSpec(cls=cls, order=order, settings=dict(settings))
        for cls, order, settings in _DEFAULT_RULE_TEMPLATES
    ]


def normalize_rule_specs(
    rules: Sequence[RuleSpec | Type[Rule]] | None,
) -> list[RuleSpec]:
    """Turn user-provided rules into RuleSpec objects."""
    if rules is None:
        return default_rule_specs()

    normalized: list[RuleSpec] = []
    for item in rules:
        if isinstance(item, RuleSpec):
            normalized.append(item)
        elif isinstance(item, type) and issubclass(item, Rule):
            normalized.append(RuleSpec(cls=item))
        else:
            raise TypeError(
                "Rules must be RuleSpec instances or Rule subclasses; "
                f"got {type(item)!r}"
            )
    return normalized


def instantiate_rules(model, specs: Sequence[RuleSpec]) -> list[Rule]:
    """Create enabled rules sorted by their effective order (stable)."""
    rules: list[Rule] = []
    for spec in specs:
        if not spec.enabled:
            continue
        rule = spec.cls(model, **spec.settings)
        if spec.order is not None:
            rule.order = spec.order
        rules.append(rule)
    return sorted(rules, key=lambda r: r.order)
