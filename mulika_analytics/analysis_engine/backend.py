"""
Numeric backend for clustering.

All vector math used by K-means (distance matrix, argmin assignment, per-cluster
means) goes through a backend object so it can be swapped or faked in tests.
Buffers for one clustering call live in a Workspace that is always released
on exit, including when an error is raised.

Backend failures (floating-point errors, shape mismatches, allocation
failures) are converted to ComputeBackendError at this boundary.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import numpy as np

from mulika_analytics.core.exceptions import ComputeBackendError
from mulika_analytics.mulika_logging import get_logger

logger = get_logger(__name__)


@contextmanager
def _guard(operation: str) -> Iterator[None]:
    """Raise on floating-point faults and re-raise backend faults as ComputeBackendError."""
    try:
        with np.errstate(all="raise"):
            yield
    except (FloatingPointError, ValueError, MemoryError) as e:
        logger.error("compute_backend_failed", operation=operation, error=str(e))
        raise ComputeBackendError(f"{operation} failed: {e}") from e


class Workspace:
    """Named device buffers for one clustering call."""

    def __init__(self) -> None:
        self._buffers: dict[str, np.ndarray] = {}
        self.released = False

    def put(self, name: str, array: np.ndarray) -> np.ndarray:
        if self.released:
            raise ComputeBackendError(f"workspace already released (buffer {name!r})")
        self._buffers[name] = array
        return array

    def get(self, name: str) -> np.ndarray:
        return self._buffers[name]

    def __len__(self) -> int:
        return len(self._buffers)

    def release(self) -> None:
        self._buffers.clear()
        self.released = True


class NumpyBackend:
    """CPU backend built on numpy float64 arrays."""

    name = "numpy"

    def __init__(self) -> None:
        self.live_workspaces = 0

    @contextmanager
    def workspace(self) -> Iterator[Workspace]:
        ws = Workspace()
        self.live_workspaces += 1
        try:
            yield ws
        finally:
            ws.release()
            self.live_workspaces -= 1

    def matrix(self, rows: Sequence[Sequence[float]]) -> np.ndarray:
        """Stack rows into an (n, d) float64 matrix."""
        with _guard("matrix"):
            data = np.asarray(rows, dtype=np.float64)
            if data.ndim != 2:
                raise ValueError(f"expected 2-D data, got shape {data.shape}")
            if not np.all(np.isfinite(data)):
                raise ValueError("data contains NaN or infinite values")
            return data

    def gather(self, data: np.ndarray, indices: Sequence[int]) -> np.ndarray:
        with _guard("gather"):
            return data[np.asarray(indices, dtype=np.intp)].copy()

    def assign(self, data: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        """Index of the nearest centroid (squared Euclidean) for every row; ties go to the lowest index."""
        with _guard("assign"):
            diff = data[:, np.newaxis, :] - centroids[np.newaxis, :, :]
            distances = np.sum(diff * diff, axis=2)
            return np.argmin(distances, axis=1)

    def partition(self, assignments: np.ndarray, k: int) -> list[np.ndarray]:
        """Row indices per cluster, in cluster index order 0..k-1."""
        with _guard("partition"):
            return [np.flatnonzero(assignments == i) for i in range(k)]

    def mean(self, data: np.ndarray, members: np.ndarray) -> np.ndarray:
        with _guard("mean"):
            return data[members].mean(axis=0)

    def random_vector(self, rng: np.random.Generator, size: int) -> np.ndarray:
        with _guard("random_vector"):
            return rng.random(size)

    def stack(self, vectors: Sequence[np.ndarray]) -> np.ndarray:
        with _guard("stack"):
            return np.stack(vectors)

    def to_list(self, array: np.ndarray) -> Any:
        return array.tolist()
