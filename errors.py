class ShapeMismatchError(ValueError):
    """X and y do not describe the same samples, or X is not a matrix."""


class EmptyDatasetError(ValueError):
    """Training data has no features or no samples."""


class ConfigError(ValueError):
    """Invalid tree or forest parameters."""


class NotFittedError(RuntimeError):
    """Prediction requested before fit."""


class QueryArityError(ValueError):
    """Query vector length differs from the fitted feature count."""
