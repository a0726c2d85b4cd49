"""OLS analysis of base rent on listing attributes."""

__version__ = "0.1.0"
