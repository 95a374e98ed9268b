"""Return, window and distance transforms."""

from .distance import (
    DistanceMatrix,
    build_distance_matrix,
    correlation_to_distance,
    window_correlation,
)
from .returns import ReturnMatrix, compute_log_returns
from .windows import Window, segment_windows

__all__ = [
    "DistanceMatrix",
    "ReturnMatrix",
    "Window",
    "build_distance_matrix",
    "compute_log_returns",
    "correlation_to_distance",
    "segment_windows",
    "window_correlation",
]
