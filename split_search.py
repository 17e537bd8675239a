from __future__ import annotations

from dataclasses import dataclass, field
import time

import numpy as np

from data_structures.feature_view import Dataset, FeatureView
from target_stats import variance

NO_SPLIT = -1


@dataclass(frozen=True)
class SplitCandidate:
    feature: int
    threshold: float


@dataclass
class SplitSearchMetrics:
    features_scanned: int = 0
    candidates_evaluated: int = 0
    time_spent_sec: float = 0.0


@dataclass
class SplitSearchResult:
    candidate: SplitCandidate | None
    score: float
    metrics: SplitSearchMetrics = field(default_factory=SplitSearchMetrics)

    @property
    def feature(self) -> int:
        return self.candidate.feature if self.candidate is not None else NO_SPLIT

    @property
    def threshold(self) -> float:
        return self.candidate.threshold if self.candidate is not None else 0.0


def candidate_thresholds(view: FeatureView) -> np.ndarray:
    """Midpoints between adjacent sorted values; empty for fewer than 2 samples."""
    if len(view) < 2:
        return np.array([], dtype=np.float64)
    return (view.values[:-1] + view.values[1:]) * 0.5


def variance_reduction(view: FeatureView, threshold: float) -> float:
    n = len(view)
    if n == 0:
        return 0.0

    left_mask = view.values <= threshold
    left = view.targets[left_mask]
    right = view.targets[~left_mask]

    weighted = (left.size / n) * variance(left) + (right.size / n) * variance(right)
    return variance(view.targets) - weighted


class VarianceSplitSearch:
    """Exhaustive midpoint split search scored by target variance reduction."""

    def __init__(self, dataset: Dataset) -> None:
        self.dataset = dataset
        self.metrics = SplitSearchMetrics()

    @staticmethod
    def _scores(view: FeatureView, thresholds: np.ndarray) -> np.ndarray:
        # Prefix sums of centred targets give every candidate's child SSE at once.
        n = len(view)
        centred = view.targets - np.mean(view.targets)
        S = np.concatenate(([0.0], np.cumsum(centred)))
        S2 = np.concatenate(([0.0], np.cumsum(centred * centred)))

        n_left = np.searchsorted(view.values, thresholds, side="right")
        n_right = n - n_left

        sum_L = S[n_left]
        sum_R = S[n] - sum_L
        sq_L = S2[n_left]
        sq_R = S2[n] - sq_L

        with np.errstate(divide="ignore", invalid="ignore"):
            sse_L = np.where(n_left > 0, sq_L - sum_L * sum_L / n_left, 0.0)
            sse_R = np.where(n_right > 0, sq_R - sum_R * sum_R / n_right, 0.0)
        sse_L = np.maximum(sse_L, 0.0)
        sse_R = np.maximum(sse_R, 0.0)

        sse_parent = max(S2[n] - S[n] * S[n] / n, 0.0)
        return (sse_parent - sse_L - sse_R) / n

    def search(self) -> SplitSearchResult:
        start = time.perf_counter()

        best_score = 0.0
        best: SplitCandidate | None = None

        for feature, view in enumerate(self.dataset.views):
            self.metrics.features_scanned += 1
            thresholds = candidate_thresholds(view)
            if thresholds.size == 0:
                continue
            # Constant targets cannot be improved on.
            if variance(view.targets) == 0.0:
                continue

            scores = self._scores(view, thresholds)
            self.metrics.candidates_evaluated += int(thresholds.size)

            # argmax keeps the first of equal scores, matching first-seen order.
            j = int(np.argmax(scores))
            if scores[j] > best_score:
                best_score = float(scores[j])
                best = SplitCandidate(feature=feature, threshold=float(thresholds[j]))

        self.metrics.time_spent_sec += time.perf_counter() - start
        return SplitSearchResult(candidate=best, score=best_score, metrics=self.metrics)


def find_best_split(dataset: Dataset) -> tuple[float, int, float]:
    """Return ``(score, feature, threshold)``; feature is ``NO_SPLIT`` when nothing beats 0."""
    result = VarianceSplitSearch(dataset).search()
    return result.score, result.feature, result.threshold
