from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from errors import ConfigError, NotFittedError, QueryArityError
from tree_builder import RegressionTree, TreeBuilderParams, check_training_data


@dataclass
class ForestParams:
    n_trees: int = 100
    min_features: int = 1
    max_depth: int = 3
    min_sample_size: int = 2
    min_variance_reduction: float = 0.0

    sampling: str = "bootstrap"  # one of: bootstrap, contiguous
    random_state: int = 0

    def __post_init__(self) -> None:
        if self.n_trees <= 0:
            raise ConfigError("n_trees must be positive")
        if self.min_features < 0:
            raise ConfigError("min_features must be >= 0")
        if self.sampling not in {"bootstrap", "contiguous"}:
            raise ConfigError("sampling must be one of: bootstrap, contiguous")
        # Per-tree settings are validated by the tree params themselves.
        self.tree_params()

    def tree_params(self) -> TreeBuilderParams:
        return TreeBuilderParams(
            min_sample_size=self.min_sample_size,
            max_depth=self.max_depth,
            min_variance_reduction=self.min_variance_reduction,
        )


@dataclass
class ForestMember:
    tree: RegressionTree
    feature_indices: np.ndarray
    rows: np.ndarray


class RandomForest:
    """Bagged regression trees, each fitted on a random subset of features."""

    def __init__(
        self,
        params: ForestParams | None = None,
        rng: np.random.Generator | None = None,
    ) -> None:
        self.params = params or ForestParams()
        self.rng = rng if rng is not None else np.random.default_rng(self.params.random_state)

        self.members: list[ForestMember] = []
        self.n_features_: int | None = None
        self.metrics: dict = {}

    def _sample_rows(self, n_samples: int) -> np.ndarray:
        if self.params.sampling == "bootstrap":
            return np.sort(self.rng.integers(0, n_samples, size=n_samples))

        start = int(self.rng.integers(n_samples))
        length = int(self.rng.integers(1, n_samples - start + 1))
        return np.arange(start, start + length)

    def _sample_features(self, n_features: int) -> np.ndarray:
        low = max(self.params.min_features, 1)
        k = int(self.rng.integers(low, n_features)) if low < n_features else n_features
        chosen = self.rng.choice(n_features, size=k, replace=False)
        return np.sort(chosen)

    def fit(self, X, y) -> "RandomForest":
        X, y = check_training_data(X, y)
        n_features, n_samples = X.shape
        if self.params.min_features >= n_features:
            raise ConfigError(
                f"min_features ({self.params.min_features}) must be smaller than "
                f"the number of features ({n_features})"
            )

        tree_params = self.params.tree_params()
        self.members = []
        self.metrics = {
            "n_trees": self.params.n_trees,
            "sampling": self.params.sampling,
            "nodes_visited": 0,
            "nodes_split": 0,
            "candidates_evaluated": 0,
            "split_search_time_sec": 0.0,
            "tree_metrics": [],
        }

        for tree_idx in range(self.params.n_trees):
            rows = self._sample_rows(n_samples)
            feature_indices = self._sample_features(n_features)

            X_sub = X[np.ix_(feature_indices, rows)]
            tree = RegressionTree(tree_params).fit(X_sub, y[rows])
            self.members.append(ForestMember(tree=tree, feature_indices=feature_indices, rows=rows))

            self.metrics["nodes_visited"] += tree.metrics.nodes_visited
            self.metrics["nodes_split"] += tree.metrics.nodes_split
            self.metrics["candidates_evaluated"] += tree.metrics.candidates_evaluated
            self.metrics["split_search_time_sec"] += tree.metrics.split_search_time_sec
            self.metrics["tree_metrics"].append(
                {
                    "tree_idx": tree_idx,
                    "n_rows": int(rows.size),
                    "features": feature_indices.tolist(),
                    "depth": tree.metrics.deepest_depth,
                    "leaves": tree.metrics.leaves,
                }
            )

        self.n_features_ = int(n_features)
        return self

    def _check_query(self, x) -> np.ndarray:
        if not self.members:
            raise NotFittedError("Model must be fitted before prediction")
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.n_features_:
            raise QueryArityError(
                f"query must be a vector of length {self.n_features_}, got shape {x.shape}"
            )
        return x

    def member_predictions(self, x) -> np.ndarray:
        x = self._check_query(x)
        return np.array(
            [member.tree.predict(x[member.feature_indices]) for member in self.members],
            dtype=np.float64,
        )

    def predict(self, x) -> float:
        return float(np.mean(self.member_predictions(x)))

    def predict_batch(self, Q) -> np.ndarray:
        Q = np.asarray(Q, dtype=np.float64)
        if Q.ndim != 2:
            raise QueryArityError("queries must be 2D with one query vector per row")
        preds = np.zeros(Q.shape[0], dtype=np.float64)
        for i in range(Q.shape[0]):
            preds[i] = self.predict(Q[i])
        return preds
