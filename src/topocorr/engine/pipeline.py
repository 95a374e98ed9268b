"""Rolling correlation-topology pipeline."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from ..config import AnalysisConfig
from ..errors import InsufficientWindowError
from ..eval.metrics import barcode_statistics
from ..topology.diagram_distance import DiagramDistance
from ..topology.homology import Barcode, HomologyEngine, make_homology_engine
from ..topology.series import distance_series
from ..transforms.distance import DistanceMatrix, build_distance_matrix
from ..transforms.returns import ReturnMatrix, compute_log_returns
from ..transforms.windows import Window, segment_windows

logger = logging.getLogger(__name__)


def _hash_config(cfg: AnalysisConfig) -> str:
    """Return a deterministic hash for the provided configuration."""

    payload = json.dumps(asdict(cfg), sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass
class AnalysisResults:
    """Container for the artefacts of one pipeline run."""

    returns: ReturnMatrix
    windows: list[Window]
    distances: list[DistanceMatrix]
    barcodes: list[Barcode]
    distance_from_first: pd.DataFrame
    distance_from_previous: pd.DataFrame
    barcode_stats: pd.DataFrame
    config_hash: str
    prices: pd.DataFrame | None = None

    @property
    def n_windows(self) -> int:
        return len(self.windows)

    def barcodes_frame(self) -> pd.DataFrame:
        frames = [b.to_frame() for b in self.barcodes]
        if not frames:
            return pd.DataFrame(columns=["window", "dimension", "birth", "death"])
        return pd.concat(frames, ignore_index=True)


class TopologyPipeline:
    """Prices to returns to windows to distance matrices to barcodes.

    The homology and diagram-distance backends are injected so that callers
    (and tests) can swap them; by default they are chosen from the config.
    """

    def __init__(
        self,
        prices: pd.DataFrame,
        cfg: AnalysisConfig,
        *,
        homology_engine: HomologyEngine | None = None,
        diagram_distance: DiagramDistance | None = None,
    ):
        self.prices = prices.sort_index()
        self.cfg = cfg
        self.homology_engine = homology_engine or make_homology_engine(cfg.homology_backend)
        self.diagram_distance = diagram_distance or DiagramDistance(cfg.diagram_metric)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(
        self,
        *,
        start: str | pd.Timestamp | None = None,
        end: str | pd.Timestamp | None = None,
    ) -> AnalysisResults:
        """Execute the pipeline over ``[start, end]`` of the loaded prices."""

        cfg = self.cfg
        prices = self.prices.loc[start:end] if (start is not None or end is not None) else self.prices
        logger.info(
            "Analysing %s price rows for %s tickers with window length %s",
            len(prices),
            prices.shape[1],
            cfg.window_length,
        )

        returns = compute_log_returns(prices, policy=cfg.missing_data)
        windows = segment_windows(returns, cfg.window_length)
        if not windows:
            raise ValueError("No return rows available to segment into windows")
        for window in windows:
            if len(window) < 2:
                raise InsufficientWindowError(
                    f"Window {window.index} starting {window.start_date.date()} has "
                    f"{len(window)} of {cfg.window_length} return row(s); correlation needs at "
                    f"least 2. {len(returns)} returns in "
                    f"{prices.index.min().date()} to {prices.index.max().date()}; adjust "
                    "the date range or window_length",
                    window_index=window.index,
                    rows=len(window),
                )

        distances = self._build_distances(windows)
        if cfg.check_reproducibility:
            repeat = self._build_distances(windows)
            if not all(np.array_equal(a.values, b.values) for a, b in zip(distances, repeat, strict=True)):
                raise RuntimeError("Distance matrices are not reproducible across runs")

        barcodes = self._compute_barcodes(distances)
        dims = list(cfg.distance_dimensions)
        from_first = distance_series(barcodes, dims, reference="first", engine=self.diagram_distance)
        from_previous = distance_series(
            barcodes, dims, reference="previous", engine=self.diagram_distance
        )
        logger.info("Computed %s barcodes and distance series for %s", len(barcodes), dims)

        return AnalysisResults(
            returns=returns,
            windows=windows,
            distances=distances,
            barcodes=barcodes,
            distance_from_first=from_first,
            distance_from_previous=from_previous,
            barcode_stats=barcode_statistics(barcodes),
            config_hash=_hash_config(cfg),
            prices=prices,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_distances(self, windows: Sequence[Window]) -> list[DistanceMatrix]:
        return [build_distance_matrix(w, tolerance=self.cfg.tolerance) for w in windows]

    def _compute_barcodes(self, distances: Sequence[DistanceMatrix]) -> list[Barcode]:
        max_dim = self.cfg.max_dimension
        n_jobs = self.cfg.n_jobs
        if n_jobs is None or n_jobs == 1 or len(distances) <= 1:
            return [self.homology_engine.compute(d, max_dim) for d in distances]

        from joblib import Parallel, delayed

        # Parallel preserves input order, keeping barcodes chronological.
        parallel = Parallel(n_jobs=n_jobs, prefer="processes")
        return list(parallel(delayed(self.homology_engine.compute)(d, max_dim) for d in distances))
