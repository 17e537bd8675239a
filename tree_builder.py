from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from data_structures.feature_view import Dataset, partition_dataset, prepare_dataset
from errors import (
    ConfigError,
    EmptyDatasetError,
    NotFittedError,
    QueryArityError,
    ShapeMismatchError,
)
from split_search import NO_SPLIT, VarianceSplitSearch


@dataclass
class TreeNode:
    prediction: float
    depth: int
    n_samples: int
    is_leaf: bool = True
    split_feature: int | None = None
    split_threshold: float | None = None
    gain: float = 0.0
    left: TreeNode | None = None
    right: TreeNode | None = None


@dataclass
class TreeBuildMetrics:
    nodes_visited: int = 0
    nodes_split: int = 0
    leaves: int = 0
    deepest_depth: int = 0
    candidates_evaluated: int = 0
    split_search_time_sec: float = 0.0


@dataclass
class TreeBuilderParams:
    min_sample_size: int = 2
    max_depth: int = 3
    min_variance_reduction: float = 0.0

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ConfigError("max_depth must be >= 0")
        if self.min_sample_size < 0:
            raise ConfigError("min_sample_size must be >= 0")
        if not np.isfinite(self.min_variance_reduction) or self.min_variance_reduction < 0.0:
            raise ConfigError("min_variance_reduction must be a finite value >= 0")


class TreeBuilder:
    def __init__(self, params: TreeBuilderParams | None = None) -> None:
        self.params = params or TreeBuilderParams()
        self.metrics = TreeBuildMetrics()

    def _should_stop(self, dataset: Dataset, depth: int) -> bool:
        if dataset.n_samples < self.params.min_sample_size:
            return True
        if depth > self.params.max_depth:
            return True
        return False

    def build_tree(self, dataset: Dataset) -> TreeNode:
        root = TreeNode(prediction=dataset.prediction(), depth=0, n_samples=dataset.n_samples)
        # Pending (node, dataset) pairs; left is popped before right, as in recursion.
        stack = [(root, dataset)]

        while stack:
            node, node_data = stack.pop()
            self.metrics.nodes_visited += 1
            self.metrics.deepest_depth = max(self.metrics.deepest_depth, node.depth)

            if self._should_stop(node_data, node.depth):
                self.metrics.leaves += 1
                continue

            search = VarianceSplitSearch(node_data)
            result = search.search()
            self.metrics.candidates_evaluated += result.metrics.candidates_evaluated
            self.metrics.split_search_time_sec += result.metrics.time_spent_sec

            if result.feature == NO_SPLIT or result.score < self.params.min_variance_reduction:
                self.metrics.leaves += 1
                continue

            left_data, right_data = partition_dataset(node_data, result.feature, result.threshold)

            node.is_leaf = False
            node.split_feature = result.feature
            node.split_threshold = result.threshold
            node.gain = result.score
            node.left = TreeNode(
                prediction=left_data.prediction(),
                depth=node.depth + 1,
                n_samples=left_data.n_samples,
            )
            node.right = TreeNode(
                prediction=right_data.prediction(),
                depth=node.depth + 1,
                n_samples=right_data.n_samples,
            )
            self.metrics.nodes_split += 1

            stack.append((node.right, right_data))
            stack.append((node.left, left_data))

        return root


def check_training_data(X, y) -> tuple[np.ndarray, np.ndarray]:
    try:
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
    except ValueError as e:
        raise ShapeMismatchError("X must be a rectangular (n_features, n_samples) matrix") from e

    if X.size == 0 or y.size == 0:
        raise EmptyDatasetError("X and y must contain at least one feature and one sample")
    if X.ndim != 2:
        raise ShapeMismatchError("X must be 2D with shape (n_features, n_samples)")
    if y.ndim != 1:
        raise ShapeMismatchError("y must be a 1D array")
    if X.shape[1] != y.shape[0]:
        raise ShapeMismatchError(
            f"X has {X.shape[1]} samples per feature but y has {y.shape[0]} targets"
        )
    if not np.all(np.isfinite(X)) or not np.all(np.isfinite(y)):
        raise ValueError("X and y must contain only finite values")

    return X, y


class RegressionTree:
    """CART regression tree fitted on feature-major data.

    ``fit`` takes X of shape (n_features, n_samples); ``predict`` takes a single
    query vector of length n_features.
    """

    def __init__(self, params: TreeBuilderParams | None = None) -> None:
        self.params = params or TreeBuilderParams()
        self.root: TreeNode | None = None
        self.n_features_: int | None = None
        self.metrics = TreeBuildMetrics()

    def fit(self, X, y) -> "RegressionTree":
        X, y = check_training_data(X, y)

        builder = TreeBuilder(self.params)
        self.root = builder.build_tree(prepare_dataset(X, y))
        self.n_features_ = int(X.shape[0])
        self.metrics = builder.metrics
        return self

    def _check_query(self, x) -> np.ndarray:
        if self.root is None:
            raise NotFittedError("Model must be fitted before prediction")
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.n_features_:
            raise QueryArityError(
                f"query must be a vector of length {self.n_features_}, got shape {x.shape}"
            )
        return x

    def apply(self, x) -> TreeNode:
        """Return the leaf that ``x`` reaches."""
        x = self._check_query(x)
        node = self.root
        while not node.is_leaf:
            if x[node.split_feature] <= node.split_threshold:
                node = node.left
            else:
                node = node.right
        return node

    def predict(self, x) -> float:
        return float(self.apply(x).prediction)

    def predict_batch(self, Q) -> np.ndarray:
        Q = np.asarray(Q, dtype=np.float64)
        if Q.ndim != 2:
            raise QueryArityError("queries must be 2D with one query vector per row")
        preds = np.zeros(Q.shape[0], dtype=np.float64)
        for i in range(Q.shape[0]):
            preds[i] = self.predict(Q[i])
        return preds

    def depth(self) -> int:
        if self.root is None:
            raise NotFittedError("Model must be fitted before inspection")
        deepest = 0
        stack = [self.root]
        while stack:
            node = stack.pop()
            deepest = max(deepest, node.depth)
            if not node.is_leaf:
                stack.extend((node.left, node.right))
        return deepest

    def n_leaves(self) -> int:
        if self.root is None:
            raise NotFittedError("Model must be fitted before inspection")
        count = 0
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.is_leaf:
                count += 1
            else:
                stack.extend((node.left, node.right))
        return count
