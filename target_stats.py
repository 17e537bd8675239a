import numpy as np


def mean(values) -> float:
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0:
        return 0.0
    return float(np.mean(values))


def variance(values) -> float:
    """Population variance: mean squared deviation from the mean.

    Exactly 0.0 for empty or constant input.
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size == 0 or np.all(values == values[0]):
        return 0.0
    centred = values - np.mean(values)
    return float(np.mean(centred * centred))
