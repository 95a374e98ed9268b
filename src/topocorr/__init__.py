"""Package exports for the correlation-topology toolkit."""

__version__ = "0.3.0"

from .api import (  # noqa: F401
    AnalysisContext,
    PeriodResult,
    load_config,
    load_universe,
    merge_overrides,
    prepare_pipeline,
    resolve_config,
    run_analysis,
    run_periods,
    run_window_sweep,
)
from .cli import main  # noqa: F401
from .config import AnalysisConfig, AnalysisPeriod, MissingDataPolicy  # noqa: F401

__all__ = [
    "__version__",
    "AnalysisConfig",
    "AnalysisContext",
    "AnalysisPeriod",
    "MissingDataPolicy",
    "PeriodResult",
    "load_config",
    "load_universe",
    "main",
    "merge_overrides",
    "prepare_pipeline",
    "resolve_config",
    "run_analysis",
    "run_periods",
    "run_window_sweep",
]
