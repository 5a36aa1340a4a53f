from .config import Config, cfg
from .input_data import SystemData, build_input
from .main import run_dispatch
from .model import DispatchModel
from .pricing import Granularity, get_pricing
from .result_types import DispatchResult, SolveState, SolveStatus

__all__ = [
    "Config",
    "cfg",
    "SystemData",
    "build_input",
    "run_dispatch",
    "DispatchModel",
    "Granularity",
    "get_pricing",
    "DispatchResult",
    "SolveState",
    "SolveStatus",
]
