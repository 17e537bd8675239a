from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from target_stats import mean


@dataclass
class FeatureView:
    """One feature's (value, target) pairs sorted ascending by value.

    ``sample_ids`` identifies each pair's sample across the views of a dataset.
    """

    values: np.ndarray
    targets: np.ndarray
    sample_ids: np.ndarray

    def __len__(self) -> int:
        return int(self.values.size)

    def take(self, mask: np.ndarray) -> FeatureView:
        # Boolean masking keeps the existing order.
        return FeatureView(
            values=self.values[mask],
            targets=self.targets[mask],
            sample_ids=self.sample_ids[mask],
        )


@dataclass
class Dataset:
    views: list[FeatureView]

    @property
    def n_features(self) -> int:
        return len(self.views)

    @property
    def n_samples(self) -> int:
        return len(self.views[0]) if self.views else 0

    def targets(self) -> np.ndarray:
        if not self.views:
            return np.array([], dtype=np.float64)
        return self.views[0].targets

    def prediction(self) -> float:
        return mean(self.targets())


def prepare_dataset(X: np.ndarray, y: np.ndarray) -> Dataset:
    """Build one sorted view per feature from a feature-major (D, N) matrix."""
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if X.ndim != 2:
        raise ValueError("X must be a 2D array of shape (n_features, n_samples)")
    if y.ndim != 1 or y.shape[0] != X.shape[1]:
        raise ValueError("y must be a 1D array with one target per column of X")

    sample_ids = np.arange(y.shape[0], dtype=np.int64)
    views: list[FeatureView] = []
    for feature_idx in range(X.shape[0]):
        column = X[feature_idx]
        order = np.argsort(column, kind="stable")
        views.append(
            FeatureView(
                values=column[order],
                targets=y[order],
                sample_ids=sample_ids[order],
            )
        )

    return Dataset(views=views)


def partition_dataset(
    dataset: Dataset,
    feature: int,
    threshold: float,
) -> tuple[Dataset, Dataset]:
    """Split every view by the sample identities of the chosen feature's split."""
    chosen = dataset.views[feature]
    left_ids = chosen.sample_ids[chosen.values <= threshold]

    # Every view carries the same ids, so the chosen view bounds them all.
    n_ids = int(chosen.sample_ids.max()) + 1 if len(chosen) else 0
    goes_left = np.zeros(n_ids, dtype=bool)
    goes_left[left_ids] = True

    left_views: list[FeatureView] = []
    right_views: list[FeatureView] = []
    for view in dataset.views:
        left_mask = goes_left[view.sample_ids]
        left_views.append(view.take(left_mask))
        right_views.append(view.take(~left_mask))

    return Dataset(views=left_views), Dataset(views=right_views)
