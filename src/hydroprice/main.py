from __future__ import annotations

import logging
from typing import Callable, Sequence, Type

from hydroprice.config import Config, cfg
from hydroprice.input_data import SystemData, build_input
from hydroprice.model import DispatchModel
from hydroprice.output import produce_outputs
from hydroprice.reporting import Reporter
from hydroprice.result_types import DispatchResult, SolveStatus
from hydroprice.rules.base import Rule, RuleSpec

InputBuilder = Callable[[Config], SystemData]


def configure_logging(level: str = "INFO") -> None:
    """Console logging for a run; solver-adjacent libraries are kept quiet."""
    logging.basicConfig(
        format="%(asctime)s | %(name)s | %(levelname)s :: %(message)s",
        datefmt="%d-%b-%y %H:%M:%S",
        level=getattr(logging, str(level).upper(), logging.INFO),
    )
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def default_input_builder(config: Config) -> SystemData:
    """Build a synthetic hydrothermal system using the project's helper."""
    seed = config.SEED if config.SEED is not None else 7
    return build_input(config, seed=seed)


def run_dispatch(
    config: Config | None = None,
    data: SystemData | None = None,
    input_builder: InputBuilder | None = None,
    reporter: Reporter | None = None,
    validate_config: bool = True,
    enable_reporting: bool = True,
    rules: Sequence[RuleSpec | Type[Rule]] | None = None,
    check_violations: bool = False,
    write_outputs: bool = False,
) -> DispatchResult:
    """
    Build, solve, price and optionally report on a dispatch scenario.

    Parameters
    ----------
    config:
        The configuration for the run. Defaults to `hydroprice.config.cfg` when omitted.
    data:
        Pre-built `SystemData`. When omitted then `input_builder` (or the default
        synthetic builder) is used to construct data from the given config.
    input_builder:
        Optional callable that accepts a `Config` and returns `SystemData`. Ignored
        when `data` is supplied.
    reporter:
        Custom reporter instance. When `enable_reporting` is True and no reporter is
        provided, the default `Reporter` is used.
    validate_config:
        Toggle to run `Config.validate()` before building inputs.
    enable_reporting:
        When False, skips reporter pre/post hooks even if a reporter is provided.
    rules:
        Optional iterable describing which rule classes to use. `None` falls back to
        the library defaults.
    check_violations:
        Attach a constraint violation report for the stage-1 model to the result.
        An infeasible stage 1 gets an IIS instead when `Config.COMPUTE_IIS` is set.
    write_outputs:
        Persist CSV/JSON outputs under `Config.OUTPUT_DIR`.

    Returns
    -------
    DispatchResult
        Stage-1 dispatch with prices from the linear re-solve when available.
    """
    cfg_obj = config or cfg

    if validate_config:
        cfg_obj.validate()

    input_data = data
    if input_data is None:
        builder = input_builder or default_input_builder
        input_data = builder(cfg_obj)

    if len(input_data.periods) != int(cfg_obj.PERIODS):
        raise ValueError(
            f"Config.PERIODS={cfg_obj.PERIODS} but input data covers "
            f"{len(input_data.periods)} period(s). Update the Config or data so they agree."
        )

    model = DispatchModel(cfg_obj, input_data, rules=rules)

    active_reporter = reporter if enable_reporting else None
    if active_reporter is None and enable_reporting:
        active_reporter = Reporter(cfg_obj)

    if active_reporter is not None:
        active_reporter.pre_solve(model, stage="precheck")

    model.build()
    if active_reporter is not None:
        active_reporter.pre_solve(
            model,
            stage="model_stats",
            model_stats=model.model_stats(),
        )

    result = model.solve()

    if check_violations and result.has_solution:
        model.check_violations(result)
    if result.status is SolveStatus.INFEASIBLE and cfg_obj.COMPUTE_IIS:
        model.compute_iis(result)

    if active_reporter is not None:
        active_reporter.post_solve(result, input_data)

    if write_outputs:
        produce_outputs(result, cfg_obj, input_data)

    return result


def main() -> DispatchResult:
    """CLI entry point."""
    configure_logging(cfg.LOG_LEVEL)
    return run_dispatch(
        config=cfg,
        validate_config=True,
        input_builder=default_input_builder,
        reporter=Reporter(cfg),
        enable_reporting=True,
        check_violations=True,
        write_outputs=True,
    )


if __name__ == "__main__":
    main()
