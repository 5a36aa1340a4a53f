# src/hydroprice/rules/base.py
from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Type

if TYPE_CHECKING:
    from hydroprice.config import Config
    from hydroprice.handle import ModelHandle
    from hydroprice.input_data import SystemData


class BuildCtxProto(Protocol):
    handle: ModelHandle
    cfg: Config
    data: SystemData

    def cost(self, value: float) -> float: ...


@dataclass
class RuleSpec:
    cls: Type["Rule"]
    order: int | None = None
    enabled: bool = True
    settings: dict[str, Any] = field(default_factory=dict)


class Rule(ABC):
    order: int = 100
    enabled: bool = True
    name: str = "Rule"

    def __init__(self, model: BuildCtxProto, **settings: Any) -> None:
        self.model: BuildCtxProto = model
        self._settings: dict[str, Any] = settings

    def declare_vars(self) -> None:
        return

    def add_hard(self) -> None:
        return

    def contribute_objective(self) -> list:
        return []

    def report_descriptors(self) -> list[dict[str, Any]]:
        """Zero or more JSON-serializable descriptors a reporter can print."""
        return []

    def setting(self, key: str, default: Any) -> Any:
        return self._settings.get(key, default)

    # shorthands used by most rules
    @property
    def periods(self) -> range:
        return self.model.data.periods

    def var(self, group: str, key: tuple):
        return self.model.handle.variable_groups[group][key]
