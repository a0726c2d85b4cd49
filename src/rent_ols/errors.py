"""Typed failures raised by the analysis stages."""


class RentModelError(Exception):
    """Base class for every error raised by rent_ols."""


class DataLoadError(RentModelError):
    """Input file is missing, unreadable or lacks required columns."""


class InsufficientDataError(RentModelError):
    """A stage was left with too few rows to continue."""


class ConfigurationError(RentModelError):
    """Invalid thresholds, split parameters or model specs."""


class SingularFitError(RentModelError):
    """Predictor matrix is rank deficient, so OLS has no unique solution."""
