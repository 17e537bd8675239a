import numpy as np
import pytest

from errors import (
    ConfigError,
    EmptyDatasetError,
    NotFittedError,
    QueryArityError,
    ShapeMismatchError,
)
from tree_builder import RegressionTree, TreeBuilder, TreeBuilderParams
from data_structures.feature_view import prepare_dataset


def _s1_dataset():
    X = np.array([[2.4, 1.2, 6.4, 7.3], [2.1, 4.7, 8.1, 6.2]])
    y = np.array([8.1, 13.0, 16.0, 27.0])
    return X, y


def _check_node_statistics(node, X, y, rows):
    """Route training rows from ``node`` down and compare with stored node stats."""
    assert node.n_samples == rows.size
    if rows.size:
        assert np.isclose(node.prediction, np.mean(y[rows]))
    if node.is_leaf:
        return

    go_left = X[node.split_feature, rows] <= node.split_threshold
    left_rows, right_rows = rows[go_left], rows[~go_left]
    assert np.all(X[node.split_feature, left_rows] <= node.split_threshold)
    assert np.all(X[node.split_feature, right_rows] > node.split_threshold)
    _check_node_statistics(node.left, X, y, left_rows)
    _check_node_statistics(node.right, X, y, right_rows)


def _check_leaf_means(tree, X, y):
    leaves = {}
    for j in range(X.shape[1]):
        leaf = tree.apply(X[:, j])
        assert tree.predict(X[:, j]) == leaf.prediction
        leaves.setdefault(id(leaf), (leaf, []))[1].append(y[j])
    for leaf, targets in leaves.values():
        assert np.isclose(leaf.prediction, np.mean(targets))


def test_s1_predictions_are_leaf_means_within_target_range():
    X, y = _s1_dataset()
    tree = RegressionTree(TreeBuilderParams(max_depth=3, min_sample_size=2)).fit(X, y)

    for query in ([2.4, 2.1], [1.2, 4.7], [6.4, 8.1], [7.3, 6.2]):
        pred = tree.predict(query)
        assert y.min() <= pred <= y.max()

    _check_leaf_means(tree, X, y)
    _check_node_statistics(tree.root, X, y, np.arange(X.shape[1]))


def test_constant_targets_give_single_leaf():
    X, _ = _s1_dataset()
    y = np.array([5.0, 5.0, 5.0, 5.0])

    tree = RegressionTree(TreeBuilderParams(max_depth=10, min_sample_size=1)).fit(X, y)

    assert tree.root.is_leaf
    assert tree.n_leaves() == 1
    for j in range(X.shape[1]):
        assert tree.predict(X[:, j]) == 5.0
    assert tree.predict([100.0, -100.0]) == 5.0


def test_linear_target_is_reproduced_on_training_points():
    x = np.arange(8, dtype=np.float64)
    tree = RegressionTree(TreeBuilderParams(max_depth=10, min_sample_size=1)).fit(x[None, :], x)

    for value in x:
        assert tree.predict([value]) == value
    assert tree.n_leaves() == 8


def test_single_sample_gives_leaf_with_its_target():
    tree = RegressionTree().fit([[3.0], [4.0]], [7.5])

    assert tree.root.is_leaf
    assert tree.predict([0.0, 0.0]) == 7.5


def test_min_sample_size_above_n_gives_mean_leaf():
    X, y = _s1_dataset()
    tree = RegressionTree(TreeBuilderParams(min_sample_size=5, max_depth=3)).fit(X, y)

    assert tree.root.is_leaf
    assert np.isclose(tree.predict([1.0, 1.0]), np.mean(y))


def test_depth_is_bounded_by_max_depth_plus_one():
    rng = np.random.default_rng(11)
    X = rng.normal(size=(3, 200))
    y = X[0] * X[1] + rng.normal(size=200)

    for max_depth in (0, 1, 2, 4):
        tree = RegressionTree(TreeBuilderParams(max_depth=max_depth, min_sample_size=1)).fit(X, y)
        assert tree.depth() <= max_depth + 1
        assert tree.metrics.deepest_depth == tree.depth()
        _check_node_statistics(tree.root, X, y, np.arange(X.shape[1]))


def test_informative_feature_is_chosen_over_noise():
    rng = np.random.default_rng(4)
    informative = rng.uniform(-1.0, 1.0, size=500)
    noise = rng.uniform(-1.0, 1.0, size=500)
    X = np.vstack([informative, noise])
    y = np.where(informative > 0.0, 10.0, 0.0)

    tree = RegressionTree(TreeBuilderParams(max_depth=0, min_sample_size=2)).fit(X, y)

    assert tree.root.split_feature == 0
    assert tree.root.left.is_leaf and tree.root.right.is_leaf
    assert tree.root.left.prediction == 0.0
    assert tree.root.right.prediction == 10.0


def test_min_variance_reduction_stops_weak_splits():
    X = np.array([[1.0, 2.0, 3.0, 4.0]])
    y = np.array([0.0, 0.0, 1.0, 1.0])

    weak = RegressionTree(TreeBuilderParams(min_variance_reduction=0.3)).fit(X, y)
    strong = RegressionTree(TreeBuilderParams(min_variance_reduction=0.2)).fit(X, y)

    assert weak.root.is_leaf
    assert not strong.root.is_leaf
    assert strong.root.split_threshold == 2.5


def test_fit_is_deterministic_and_predict_is_repeatable():
    rng = np.random.default_rng(21)
    X = rng.normal(size=(4, 80))
    y = X[2] - 0.5 * X[0] + 0.1 * rng.normal(size=80)
    queries = rng.normal(size=(25, 4))

    first = RegressionTree(TreeBuilderParams(max_depth=4)).fit(X, y)
    second = RegressionTree(TreeBuilderParams(max_depth=4)).fit(X, y)

    np.testing.assert_array_equal(first.predict_batch(queries), second.predict_batch(queries))
    assert first.predict(queries[0]) == first.predict(queries[0])


def test_builder_collects_metrics():
    X, y = _s1_dataset()
    builder = TreeBuilder(TreeBuilderParams(max_depth=3, min_sample_size=2))
    root = builder.build_tree(prepare_dataset(X, y))

    assert not root.is_leaf
    assert builder.metrics.nodes_visited == 2 * builder.metrics.nodes_split + 1
    assert builder.metrics.leaves == builder.metrics.nodes_split + 1
    assert builder.metrics.candidates_evaluated > 0


def test_invalid_params_raise_config_error():
    with pytest.raises(ConfigError):
        TreeBuilderParams(max_depth=-1)
    with pytest.raises(ConfigError):
        TreeBuilderParams(min_sample_size=-2)
    with pytest.raises(ConfigError):
        TreeBuilderParams(min_variance_reduction=float("nan"))


def test_shape_mismatch():
    tree = RegressionTree()
    with pytest.raises(ShapeMismatchError):
        tree.fit([[1.0, 2.0, 3.0]], [1.0, 2.0])
    with pytest.raises(ShapeMismatchError):
        tree.fit([[1.0, 2.0], [3.0]], [1.0, 2.0])
    with pytest.raises(ShapeMismatchError):
        tree.fit([1.0, 2.0], [1.0, 2.0])


def test_empty_inputs():
    tree = RegressionTree()
    with pytest.raises(EmptyDatasetError):
        tree.fit([[]], [])
    with pytest.raises(EmptyDatasetError):
        tree.fit(np.empty((0, 3)), [1.0, 2.0, 3.0])


def test_non_finite_values_are_rejected():
    with pytest.raises(ValueError):
        RegressionTree().fit([[1.0, np.nan]], [1.0, 2.0])


def test_predict_before_fit():
    tree = RegressionTree()
    with pytest.raises(NotFittedError):
        tree.predict([1.0])
    # Callers catching RuntimeError keep working.
    with pytest.raises(RuntimeError):
        tree.predict([1.0])


def test_query_arity():
    X, y = _s1_dataset()
    tree = RegressionTree().fit(X, y)
    with pytest.raises(QueryArityError):
        tree.predict([1.0])
    with pytest.raises(QueryArityError):
        tree.predict([1.0, 2.0, 3.0])
