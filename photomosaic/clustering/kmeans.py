# photomosaic/clustering/kmeans.py
"""
Lloyd k-means over RawColor samples with optional Hamerly pruning.

Seeding is deterministic: the first K distinct samples in input order. When
there are fewer distinct samples than K, the remaining seeds repeat the
distinct ones in order; ties in assignment go to the lowest centroid index, so
those repeats stay empty.

Hamerly mode keeps, per sample, an upper bound on the distance to its own
centroid and a lower bound on the distance to the second nearest one, and only
recomputes a full distance row when the bounds cannot prove the assignment.
The bounds live in sqrt(distance) units, which is only a metric for the
squared Euclidean distances. For anything else the flag falls back to plain
assignment. Assignments are identical to the plain path either way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger(__name__)

DistanceFn = Callable[[np.ndarray, np.ndarray], np.ndarray]

# relative slack on bound comparisons; guards against float error in the
# triangle inequality
_BOUND_SLACK = 1e-9


@dataclass(frozen=True)
class KMeansResult:
    centroids: NDArray[np.float32]  # (K', 3)
    counts: NDArray[np.int64]  # (K',)
    labels: NDArray[np.int64]  # (N,)
    iterations: int
    converged: bool
    distance_evals: int

    @property
    def weights(self) -> NDArray[np.float32]:
        total = int(self.counts.sum())
        if total == 0:
            return np.zeros(self.counts.shape, dtype=np.float32)
        return (self.counts / total).astype(np.float32)


def seed_centroids(samples: np.ndarray, k: int) -> np.ndarray:
    """First k distinct samples in input order (repeating them if too few)."""
    _, first_idx = np.unique(samples, axis=0, return_index=True)
    distinct = np.sort(first_idx)
    picks = list(distinct[:k])
    i = 0
    while len(picks) < k:
        picks.append(distinct[i % len(distinct)])
        i += 1
    return samples[np.asarray(picks)].astype(np.float64)


def _full_rows(samples: np.ndarray, centroids: np.ndarray, dist: DistanceFn) -> np.ndarray:
    return np.asarray(dist(samples[:, None, :], centroids[None, :, :]), dtype=np.float64)


def _update(samples: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    k = centroids.shape[0]
    counts = np.bincount(labels, minlength=k)
    sums = np.zeros_like(centroids)
    np.add.at(sums, labels, samples)
    out = centroids.copy()
    filled = counts > 0
    out[filled] = sums[filled] / counts[filled, None]
    return out


class _HamerlyBounds:
    def __init__(self, rows: np.ndarray, labels: np.ndarray):
        n = rows.shape[0]
        root = np.sqrt(rows)
        self.upper = root[np.arange(n), labels]
        self.lower = self._second_smallest(root, labels)

    @staticmethod
    def _second_smallest(root: np.ndarray, labels: np.ndarray) -> np.ndarray:
        if root.shape[1] < 2:
            return np.full(root.shape[0], np.inf)
        masked = root.copy()
        masked[np.arange(root.shape[0]), labels] = np.inf
        return masked.min(axis=1)

    def drift(self, labels: np.ndarray, moved: np.ndarray) -> None:
        self.upper = self.upper + moved[labels]
        self.lower = self.lower - moved.max()

    def refresh(self, idx: np.ndarray, rows: np.ndarray, labels: np.ndarray) -> None:
        root = np.sqrt(rows)
        self.upper[idx] = root[np.arange(len(idx)), labels]
        self.lower[idx] = self._second_smallest(root, labels)


def _hamerly_assign(
    samples: np.ndarray,
    centroids: np.ndarray,
    labels: np.ndarray,
    bounds: _HamerlyBounds,
    dist: DistanceFn,
) -> tuple[np.ndarray, int]:
    k = centroids.shape[0]
    evals = 0
    if k > 1:
        cc = np.sqrt(_full_rows(centroids, centroids, dist))
        np.fill_diagonal(cc, np.inf)
        half_gap = cc.min(axis=1) / 2.0
        evals += k * k
    else:
        half_gap = np.full(k, np.inf)

    bound = np.maximum(half_gap[labels], bounds.lower)
    open_idx = np.nonzero(bounds.upper * (1.0 + _BOUND_SLACK) + _BOUND_SLACK >= bound)[0]
    if open_idx.size == 0:
        return labels, evals

    # tighten the upper bound before paying for a full row
    own = np.asarray(dist(samples[open_idx], centroids[labels[open_idx]]), dtype=np.float64)
    evals += open_idx.size
    bounds.upper[open_idx] = np.sqrt(own)
    still_open = bounds.upper[open_idx] * (1.0 + _BOUND_SLACK) + _BOUND_SLACK >= bound[open_idx]
    open_idx = open_idx[still_open]
    if open_idx.size == 0:
        return labels, evals

    rows = _full_rows(samples[open_idx], centroids, dist)
    evals += rows.size
    new_labels = labels.copy()
    new_labels[open_idx] = np.argmin(rows, axis=1)
    bounds.refresh(open_idx, rows, new_labels[open_idx])
    return new_labels, evals


def kmeans(
    samples: np.ndarray,
    k: int,
    dist: DistanceFn,
    *,
    hamerly: bool = False,
    max_iter: int = 20,
    metric: bool = True,
) -> KMeansResult:
    """
    Cluster `samples` (N, 3) into at most `k` groups under `dist`.

    Args:
      samples: RawColor rows in the working space.
      k: requested cluster count; capped at N, floored at 1.
      dist: broadcasting distance, e.g. functools.partial(distance, ...).
      hamerly: prune reassignment with triangle-inequality bounds.
      max_iter: cap on assignment passes.
      metric: whether sqrt(dist) is a metric; Hamerly needs it.
    """
    samples = np.asarray(samples, dtype=np.float64).reshape(-1, 3)
    n = samples.shape[0]
    if n == 0:
        return KMeansResult(
            centroids=np.zeros((0, 3), dtype=np.float32),
            counts=np.zeros((0,), dtype=np.int64),
            labels=np.zeros((0,), dtype=np.int64),
            iterations=0,
            converged=True,
            distance_evals=0,
        )

    k = max(1, min(int(k), n))
    if hamerly and not metric:
        logger.debug("Hamerly pruning needs a metric distance; using plain assignment")
        hamerly = False

    centroids = seed_centroids(samples, k)
    rows = _full_rows(samples, centroids, dist)
    labels = np.argmin(rows, axis=1)
    evals = rows.size
    bounds = _HamerlyBounds(rows, labels) if hamerly else None

    iterations = 1
    converged = False
    while True:
        new_centroids = _update(samples, labels, centroids)
        if bounds is not None:
            moved = np.sqrt(np.asarray(dist(centroids, new_centroids), dtype=np.float64))
            evals += k
            bounds.drift(labels, moved)
        centroids = new_centroids

        if iterations >= max_iter:
            break
        iterations += 1

        if bounds is not None:
            new_labels, step_evals = _hamerly_assign(samples, centroids, labels, bounds, dist)
        else:
            rows = _full_rows(samples, centroids, dist)
            new_labels = np.argmin(rows, axis=1)
            step_evals = rows.size
        evals += step_evals

        if np.array_equal(new_labels, labels):
            converged = True
            break
        labels = new_labels

    if not converged:
        logger.debug("k-means stopped after %d iterations without converging", iterations)

    counts = np.bincount(labels, minlength=k).astype(np.int64)
    return KMeansResult(
        centroids=centroids.astype(np.float32),
        counts=counts,
        labels=labels.astype(np.int64),
        iterations=iterations,
        converged=converged,
        distance_evals=int(evals),
    )


__all__ = ["KMeansResult", "seed_centroids", "kmeans"]
