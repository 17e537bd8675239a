import argparse
import time
import sys
from pathlib import Path

import numpy as np

# Allow running as: python experiments/quick_forest_eval.py
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from forest_trainer import ForestParams, RandomForest
from tree_builder import RegressionTree, TreeBuilderParams


def _train_test_split(X, y, test_size, random_state):
    rng = np.random.default_rng(random_state)
    idx = np.arange(X.shape[0])
    rng.shuffle(idx)
    n_test = max(1, int(round(X.shape[0] * test_size)))
    test_idx = idx[:n_test]
    train_idx = idx[n_test:]
    return X[train_idx], X[test_idx], y[train_idx], y[test_idx]


def _rmse(y_true, y_pred):
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))


def load_dataset(name: str, random_state: int, max_samples: int | None):
    """Return sample-major X of shape (n_samples, n_features) and y."""
    rng = np.random.default_rng(random_state)
    key = name.lower()

    if key == "demo":
        # The four-point example the project started from.
        X = np.array([[2.4, 2.1], [1.2, 4.7], [6.4, 8.1], [7.3, 6.2]], dtype=np.float64)
        y = np.array([8.1, 13.0, 16.0, 27.0], dtype=np.float64)
    elif key == "diabetes":
        try:
            from sklearn.datasets import load_diabetes
        except ModuleNotFoundError as e:
            raise ModuleNotFoundError(
                "Dataset requires scikit-learn, which is not installed. "
                "Use synthetic_reg or install the experiments extra."
            ) from e
        ds = load_diabetes()
        X, y = ds.data.astype(np.float64), ds.target.astype(np.float64)
    elif key == "synthetic_reg":
        n_samples = 1000
        n_features = 8
        X = rng.normal(size=(n_samples, n_features))
        w = rng.normal(size=n_features)
        y = X @ w + rng.normal(scale=0.5, size=n_samples)
    else:
        raise ValueError(f"Unsupported dataset: {name}")

    if max_samples is not None and X.shape[0] > max_samples:
        idx = rng.choice(X.shape[0], size=max_samples, replace=False)
        X, y = X[idx], y[idx]
    return X, y


def evaluate_one(X_train, X_test, y_train, y_test, model):
    start = time.perf_counter()
    # Models take feature-major training data.
    model.fit(X_train.T, y_train)
    fit_time = time.perf_counter() - start

    train_pred = model.predict_batch(X_train)
    test_pred = model.predict_batch(X_test)
    return {
        "fit_time_sec": fit_time,
        "train_rmse": _rmse(y_train, train_pred),
        "test_rmse": _rmse(y_test, test_pred),
    }


def main():
    parser = argparse.ArgumentParser(description="Quick regression tree / forest checks on small datasets")
    parser.add_argument(
        "--datasets",
        type=str,
        default="demo,synthetic_reg",
        help="Comma-separated: demo, synthetic_reg, diabetes",
    )
    parser.add_argument("--max-samples", type=int, default=1000)
    parser.add_argument("--n-trees", type=int, default=25)
    parser.add_argument("--max-depth", type=int, default=5)
    parser.add_argument("--min-sample-size", type=int, default=2)
    parser.add_argument("--min-features", type=int, default=None,
                        help="Defaults to half the feature count")
    parser.add_argument("--sampling", type=str, default="bootstrap",
                        help="bootstrap or contiguous")
    parser.add_argument("--test-size", type=float, default=0.25)
    parser.add_argument("--random-state", type=int, default=42)

    args = parser.parse_args()

    datasets = [d.strip() for d in args.datasets.split(",") if d.strip()]
    if not datasets:
        raise ValueError("No datasets provided")

    for ds_name in datasets:
        X, y = load_dataset(ds_name, args.random_state, args.max_samples)
        print(f"\nDataset={ds_name} n={X.shape[0]} d={X.shape[1]}")

        if ds_name == "demo":
            tree = RegressionTree(TreeBuilderParams(max_depth=3, min_sample_size=2)).fit(X.T, y)
            for x in X:
                print(f"  predict({x.tolist()}) = {tree.predict(x):.6f}")
            continue

        X_train, X_test, y_train, y_test = _train_test_split(X, y, args.test_size, args.random_state)

        tree = RegressionTree(
            TreeBuilderParams(max_depth=args.max_depth, min_sample_size=args.min_sample_size)
        )
        tree_out = evaluate_one(X_train, X_test, y_train, y_test, tree)
        print(
            "Tree"
            f" time={tree_out['fit_time_sec']:.3f}s"
            f" train_rmse={tree_out['train_rmse']:.4f}"
            f" test_rmse={tree_out['test_rmse']:.4f}"
            f" depth={tree.depth()} leaves={tree.n_leaves()}"
        )

        min_features = args.min_features if args.min_features is not None else X.shape[1] // 2
        forest = RandomForest(
            ForestParams(
                n_trees=args.n_trees,
                min_features=min_features,
                max_depth=args.max_depth,
                min_sample_size=args.min_sample_size,
                sampling=args.sampling,
                random_state=args.random_state,
            )
        )
        forest_out = evaluate_one(X_train, X_test, y_train, y_test, forest)
        print(
            "Forest"
            f" time={forest_out['fit_time_sec']:.3f}s"
            f" train_rmse={forest_out['train_rmse']:.4f}"
            f" test_rmse={forest_out['test_rmse']:.4f}"
            f" nodes_split={forest.metrics['nodes_split']}"
            f" split_search_time={forest.metrics['split_search_time_sec']:.3f}s"
        )


if __name__ == "__main__":
    main()
