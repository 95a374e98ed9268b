"""Persistent-homology backends.

The Vietoris-Rips persistence computation itself is delegated to a dedicated
library.  This module only adapts a :class:`DistanceMatrix` to the library's
input format and reads the diagrams back into an immutable :class:`Barcode`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Protocol, Sequence

import numpy as np
import pandas as pd
from ripser import ripser

from ..transforms.distance import DistanceMatrix

logger = logging.getLogger(__name__)

MAX_FILTRATION = 2.0


def _freeze(intervals: np.ndarray) -> np.ndarray:
    arr = np.array(intervals, dtype=float).reshape(-1, 2)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Barcode:
    """Persistence intervals per homology dimension for one window.

    ``diagrams[k]`` is an ``(n, 2)`` read-only array of ``(birth, death)``
    pairs for dimension ``k``; essential classes die at ``inf``.
    """

    diagrams: tuple[np.ndarray, ...]
    window_index: int | None = None
    start_date: pd.Timestamp | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "diagrams", tuple(_freeze(d) for d in self.diagrams))

    @property
    def max_dimension(self) -> int:
        return len(self.diagrams) - 1

    def dimension(self, k: int) -> np.ndarray:
        """Return all intervals in dimension ``k`` (empty beyond the computed range)."""

        if k < 0:
            raise ValueError("Homology dimension must be non-negative")
        if k >= len(self.diagrams):
            return _freeze(np.empty((0, 2)))
        return self.diagrams[k]

    def finite(self, k: int) -> np.ndarray:
        diagram = self.dimension(k)
        return diagram[np.isfinite(diagram[:, 1])]

    def intervals(self) -> Iterator[tuple[int, float, float]]:
        for dim, diagram in enumerate(self.diagrams):
            for birth, death in diagram:
                yield dim, float(birth), float(death)

    def to_frame(self) -> pd.DataFrame:
        records = [
            {"dimension": dim, "birth": birth, "death": death}
            for dim, birth, death in self.intervals()
        ]
        frame = pd.DataFrame(records, columns=["dimension", "birth", "death"])
        frame.insert(0, "window", self.window_index)
        return frame

    @classmethod
    def from_intervals(
        cls,
        intervals: Sequence[tuple[int, float, float]],
        *,
        max_dimension: int | None = None,
        window_index: int | None = None,
        start_date: pd.Timestamp | None = None,
    ) -> "Barcode":
        """Build a barcode from ``(dimension, birth, death)`` triples."""

        top = max([int(d) for d, _, _ in intervals], default=0)
        if max_dimension is not None:
            top = max(top, max_dimension)
        buckets: list[list[tuple[float, float]]] = [[] for _ in range(top + 1)]
        for dim, birth, death in intervals:
            buckets[int(dim)].append((float(birth), float(death)))
        return cls(
            diagrams=tuple(np.array(b, dtype=float).reshape(-1, 2) for b in buckets),
            window_index=window_index,
            start_date=start_date,
        )


class HomologyEngine(Protocol):
    """Anything that turns a distance matrix into a persistence barcode."""

    name: str

    def compute(self, distance: DistanceMatrix, max_dimension: int) -> Barcode:
        ...


class RipserHomologyEngine:
    """Vietoris-Rips persistence through :func:`ripser.ripser`."""

    name = "ripser"

    def compute(self, distance: DistanceMatrix, max_dimension: int) -> Barcode:
        if max_dimension < 0:
            raise ValueError("max_dimension must be non-negative")
        result = ripser(
            np.array(distance.values, dtype=float),
            maxdim=max_dimension,
            distance_matrix=True,
        )
        logger.debug(
            "ripser window %s: %s",
            distance.window_index,
            [len(d) for d in result["dgms"]],
        )
        return Barcode(
            diagrams=tuple(result["dgms"]),
            window_index=distance.window_index,
            start_date=distance.start_date,
        )


class GudhiHomologyEngine:
    """Vietoris-Rips persistence through ``gudhi.RipsComplex``."""

    name = "gudhi"

    def __init__(self, max_edge_length: float = MAX_FILTRATION) -> None:
        self.max_edge_length = max_edge_length

    def compute(self, distance: DistanceMatrix, max_dimension: int) -> Barcode:
        try:
            import gudhi
        except ImportError as exc:
            raise RuntimeError(
                "gudhi is required for the gudhi homology backend. "
                "Install with: pip install 'topocorr[gudhi]'"
            ) from exc

        if max_dimension < 0:
            raise ValueError("max_dimension must be non-negative")
        rips = gudhi.RipsComplex(
            distance_matrix=np.array(distance.values, dtype=float),
            max_edge_length=self.max_edge_length,
        )
        # Dimension-k classes are killed by (k + 1)-simplices.
        tree = rips.create_simplex_tree(max_dimension=max_dimension + 1)
        tree.compute_persistence()
        diagrams = tuple(
            np.asarray(tree.persistence_intervals_in_dimension(k), dtype=float).reshape(-1, 2)
            for k in range(max_dimension + 1)
        )
        return Barcode(
            diagrams=diagrams,
            window_index=distance.window_index,
            start_date=distance.start_date,
        )


_ENGINES = {
    "ripser": RipserHomologyEngine,
    "gudhi": GudhiHomologyEngine,
}


def make_homology_engine(name: str = "ripser") -> HomologyEngine:
    try:
        return _ENGINES[name.lower()]()
    except KeyError as exc:
        raise ValueError(
            f"Unknown homology backend '{name}'. Expected one of: {', '.join(sorted(_ENGINES))}"
        ) from exc
