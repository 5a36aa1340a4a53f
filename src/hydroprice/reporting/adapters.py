from __future__ import annotations

from typing import Any, Optional, Protocol, cast

import pandas as pd

from hydroprice.extract import primal_frame
from hydroprice.pricing import Granularity, get_pricing, pricing_frame


class ResultAdapter(Protocol):
    """Minimal interface the Reporter needs to work with any result object."""

    def status_name(self, res: Any) -> str: ...
    def objective_value(self, res: Any) -> Optional[float]: ...
    def has_duals(self, res: Any) -> Optional[bool]: ...
    def cost_breakdown(self, res: Any) -> dict[str, float]: ...
    def warnings(self, res: Any) -> list[str]: ...

    def df_primal(self, res: Any) -> pd.DataFrame: ...
    def df_prices(self, res: Any, data: Any) -> pd.DataFrame: ...


class PandasResultAdapter:
    """Default adapter for the shipped DispatchResult dataclass."""

    def status_name(self, res: Any) -> str:
        status = getattr(res, "status", None)
        return getattr(status, "value", None) or getattr(res, "status_name", "unknown")

    def objective_value(self, res: Any) -> Optional[float]:
        return cast(Optional[float], getattr(res, "objective_value", None))

    def has_duals(self, res: Any) -> Optional[bool]:
        return cast(Optional[bool], getattr(res, "has_duals", None))

    def cost_breakdown(self, res: Any) -> dict[str, float]:
        breakdown = getattr(res, "cost_breakdown", None)
        if breakdown is None:
            return {}
        return breakdown.as_dict()

    def warnings(self, res: Any) -> list[str]:
        return list(getattr(res, "warnings", []) or [])

    def df_primal(self, res: Any) -> pd.DataFrame:
        if not getattr(res, "primal_values", None):
            return pd.DataFrame(columns=["group", "entity_id", "period", "value"])
        return primal_frame(res)

    def df_prices(self, res: Any, data: Any) -> pd.DataFrame:
        if not hasattr(res, "pricing_cache"):
            return pricing_frame([])
        return pricing_frame(get_pricing(res, data, Granularity.AUTO))
