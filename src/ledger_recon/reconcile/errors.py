from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a mapping cannot be applied to the datasets (empty, no key pair, missing header)."""


class DataShapeError(ValueError):
    """Raised when a dataset is not rectangular enough to reconcile."""
