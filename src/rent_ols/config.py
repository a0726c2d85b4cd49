"""
Run configuration for the base rent analysis.

Module level constants hold the defaults used by the scripts; the
dataclasses let callers (and tests) override any of them per run.
"""

import argparse
import numbers
import pathlib
from dataclasses import dataclass, field

from rent_ols.errors import ConfigurationError


# -----------------------------
# Defaults
# -----------------------------

RANDOM_STATE = 42
TRAIN_SIZE = 700
REGION = "Berlin"

MAX_BASERENT = 10000
MAX_SERVICE = 1500
MAX_ROOM = 25
EXCLUDED_INTERIOR = "simple"

INTERIOR_ENCODINGS = ("binary", "ordinal")

# condition number of the unit-length-column design matrix above which
# a fit is treated as singular
MAX_CONDITION_NUMBER = 1e8

# rent_ols is in src/rent_ols, so parents[2] = repo root
ROOT = pathlib.Path(__file__).resolve().parents[2]
RAW_PATH = ROOT / "data" / "raw" / "immo_data.csv"
PROC_PATH = ROOT / "data" / "processed" / "listings_cleaned.csv"
FIGURES_DIR = ROOT / "figures"
OUTPUTS_DIR = ROOT / "outputs"


@dataclass(frozen=True)
class OutlierThresholds:
    """Upper bounds (exclusive) and the interior level dropped before modeling."""

    max_baserent: float = MAX_BASERENT
    max_service: float = MAX_SERVICE
    max_room: float = MAX_ROOM
    excluded_interior: str = EXCLUDED_INTERIOR

    def __post_init__(self):
        for name in ("max_baserent", "max_service", "max_room"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class AnalysisConfig:
    """Everything a single run depends on besides the raw data itself."""

    data_path: pathlib.Path = RAW_PATH
    region: str = REGION
    thresholds: OutlierThresholds = field(default_factory=OutlierThresholds)
    interior_encoding: str = "binary"
    train_size: int = TRAIN_SIZE
    random_state: int = RANDOM_STATE
    max_condition_number: float = MAX_CONDITION_NUMBER

    def __post_init__(self):
        if not self.region:
            raise ConfigurationError("region must be a non-empty string")
        if self.interior_encoding not in INTERIOR_ENCODINGS:
            raise ConfigurationError(
                f"interior_encoding must be one of {INTERIOR_ENCODINGS}, "
                f"got {self.interior_encoding!r}"
            )
        if isinstance(self.train_size, bool) or not isinstance(self.train_size, numbers.Integral):
            raise ConfigurationError(f"train_size must be an integer, got {self.train_size!r}")
        if self.train_size <= 0:
            raise ConfigurationError(f"train_size must be positive, got {self.train_size}")
        if isinstance(self.random_state, bool) or not isinstance(self.random_state, numbers.Integral):
            raise ConfigurationError(
                f"random_state must be an integer, got {self.random_state!r}"
            )
        if self.random_state < 0:
            raise ConfigurationError(
                f"random_state must be non-negative, got {self.random_state}"
            )
        if (
            isinstance(self.max_condition_number, bool)
            or not isinstance(self.max_condition_number, numbers.Real)
            or self.max_condition_number <= 1
        ):
            raise ConfigurationError(
                f"max_condition_number must be a number above 1, got {self.max_condition_number!r}"
            )


def add_config_arguments(parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
    """Region, outlier and encoding flags shared by the command line scripts."""
    parser.add_argument("--region", default=REGION)
    parser.add_argument("--max-baserent", type=float, default=MAX_BASERENT)
    parser.add_argument("--max-service", type=float, default=MAX_SERVICE)
    parser.add_argument("--max-room", type=float, default=MAX_ROOM)
    parser.add_argument("--excluded-interior", default=EXCLUDED_INTERIOR)
    parser.add_argument("--interior-encoding", choices=INTERIOR_ENCODINGS, default="binary")
    return parser


def config_from_args(args: argparse.Namespace, data_path, **overrides) -> AnalysisConfig:
    return AnalysisConfig(
        data_path=pathlib.Path(data_path),
        region=args.region,
        thresholds=OutlierThresholds(
            max_baserent=args.max_baserent,
            max_service=args.max_service,
            max_room=args.max_room,
            excluded_interior=args.excluded_interior,
        ),
        interior_encoding=args.interior_encoding,
        **overrides,
    )
