from functools import partial

import numpy as np
import pytest

from photomosaic.clustering.kmeans import kmeans, seed_centroids
from photomosaic.color.convert import convert
from photomosaic.color.distance import distance, is_metric


def _blobs(seed=0, n=100):
    rng = np.random.default_rng(seed)
    centers = np.array([[0.1, 0.1, 0.1], [0.9, 0.2, 0.2], [0.2, 0.3, 0.9]])
    pts = [c + rng.normal(scale=0.03, size=(n, 3)) for c in centers]
    # interleaved, so the first three samples seed one centroid per blob
    return np.stack(pts, axis=1).reshape(-1, 3).astype(np.float32)


def test_seed_is_first_distinct_in_order():
    samples = np.array([[1, 1, 1], [1, 1, 1], [2, 2, 2], [3, 3, 3]], dtype=np.float32)
    seeds = seed_centroids(samples, 2)
    np.testing.assert_array_equal(seeds, [[1, 1, 1], [2, 2, 2]])


def test_kmeans_is_deterministic():
    samples = _blobs()
    dist = partial(distance, color_space="rgb", algorithm="euclidean")
    a = kmeans(samples, 3, dist)
    b = kmeans(samples, 3, dist)
    assert a.converged
    assert np.array_equal(a.centroids, b.centroids)
    assert np.array_equal(a.labels, b.labels)


def test_kmeans_finds_separated_clusters():
    samples = _blobs()
    dist = partial(distance, color_space="rgb", algorithm="euclidean")
    res = kmeans(samples, 3, dist)
    assert sorted(res.counts.tolist()) == [100, 100, 100]
    assert res.weights.sum() == pytest.approx(1.0)
    found = np.array(sorted(res.centroids.astype(np.float64).tolist()))
    expected = np.array(sorted([[0.1, 0.1, 0.1], [0.9, 0.2, 0.2], [0.2, 0.3, 0.9]]))
    np.testing.assert_allclose(found, expected, atol=0.05)


def test_hamerly_matches_plain_and_prunes():
    samples = _blobs(seed=3)
    dist = partial(distance, color_space="rgb", algorithm="euclidean")
    plain = kmeans(samples, 3, dist)
    fast = kmeans(samples, 3, dist, hamerly=True)
    assert np.array_equal(plain.labels, fast.labels)
    assert np.array_equal(plain.centroids, fast.centroids)
    assert plain.iterations == fast.iterations
    assert fast.distance_evals < plain.distance_evals


@pytest.mark.parametrize("space", ["rgb", "hsv", "cielab"])
@pytest.mark.parametrize("k", [2, 4, 5])
def test_hamerly_matches_plain_on_noisy_pixels(space, k):
    img = (np.random.default_rng(k).random((24, 24, 3)) * 255).astype("uint8")
    samples = convert(img, space).reshape(-1, 3)
    dist = partial(distance, color_space=space, algorithm="euclidean")
    plain = kmeans(samples, k, dist, max_iter=50)
    fast = kmeans(samples, k, dist, hamerly=True, max_iter=50)
    assert np.array_equal(plain.labels, fast.labels)
    assert np.array_equal(plain.centroids, fast.centroids)


def test_hamerly_flag_falls_back_for_ciede2000():
    img = (np.random.default_rng(5).random((10, 10, 3)) * 255).astype("uint8")
    samples = convert(img, "cielab").reshape(-1, 3)
    dist = partial(distance, color_space="cielab", algorithm="ciede2000")
    plain = kmeans(samples, 3, dist, metric=is_metric("ciede2000"))
    fast = kmeans(samples, 3, dist, hamerly=True, metric=is_metric("ciede2000"))
    assert np.array_equal(plain.labels, fast.labels)
    assert plain.distance_evals == fast.distance_evals


def test_k_capped_at_sample_count():
    samples = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]], dtype=np.float32)
    dist = partial(distance, color_space="rgb", algorithm="euclidean")
    res = kmeans(samples, 5, dist)
    assert res.centroids.shape == (2, 3)
    assert res.counts.tolist() == [1, 1]


def test_duplicate_seeds_stay_empty():
    samples = np.tile(np.array([[0.5, 0.25, 0.75]], dtype=np.float32), (10, 1))
    dist = partial(distance, color_space="rgb", algorithm="euclidean")
    res = kmeans(samples, 3, dist, hamerly=True)
    assert res.counts.tolist() == [10, 0, 0]
    np.testing.assert_allclose(res.centroids, np.tile(samples[:1], (3, 1)))
    assert res.converged


def test_iteration_cap():
    samples = _blobs(seed=9)
    dist = partial(distance, color_space="rgb", algorithm="euclidean")
    res = kmeans(samples, 3, dist, max_iter=1)
    assert res.iterations == 1
    assert not res.converged


def test_empty_samples():
    dist = partial(distance, color_space="rgb", algorithm="euclidean")
    res = kmeans(np.zeros((0, 3), dtype=np.float32), 3, dist)
    assert res.centroids.shape == (0, 3)
    assert res.converged
