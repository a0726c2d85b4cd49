#Make the clean, model-ready listings dataset

import argparse
import logging
import pathlib

import pandas as pd

from rent_ols import config
from rent_ols.errors import (
    ConfigurationError,
    DataLoadError,
    InsufficientDataError,
    RentModelError,
)

logger = logging.getLogger(__name__)

REGION_COL = "regio1"

# raw immo_data column -> analysis column
RAW_COLUMNS = {
    "baseRent": "baserent",
    "serviceCharge": "service",
    "livingSpace": "area",
    "noRooms": "room",
    "yearConstructed": "year",
    "noParkSpaces": "parking",
    "balcony": "balcony",
    "hasKitchen": "kitchen",
    "cellar": "cellar",
    "garden": "garden",
    "interiorQual": "interior",
    "newlyConst": "new",
    "lift": "lift",
}
COLUMNS = list(RAW_COLUMNS.values())

NUMERIC_COLS = ["baserent", "service", "area", "room", "year", "parking"]
BOOLEAN_COLS = ["balcony", "kitchen", "cellar", "garden", "new", "lift"]

BOOLEAN_CODES = {True: 1, False: 0, "True": 1, "False": 0, "true": 1, "false": 0}

INTERIOR_CODES = {
    # sophisticated and luxury share a code: the binary split is normal vs upscale
    "binary": {"normal": 0, "sophisticated": 1, "luxury": 1},
    "ordinal": {"simple": 0, "normal": 1, "sophisticated": 2, "luxury": 3},
}


def load_raw_listings(path) -> pd.DataFrame:
    """Read the raw listings CSV and check the columns we rely on are present."""
    path = pathlib.Path(path)
    logger.info(f"Loading raw listings from {path}")
    try:
        df = pd.read_csv(path, low_memory=False)
    except FileNotFoundError as exc:
        raise DataLoadError(f"Data file not found: {path}") from exc
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise DataLoadError(f"Could not parse {path}: {exc}") from exc
    except OSError as exc:
        raise DataLoadError(f"Could not read {path}: {exc}") from exc

    required = [REGION_COL] + list(RAW_COLUMNS)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DataLoadError(f"Missing required columns in dataset: {missing}")

    logger.info(f"Loaded {len(df)} records with {len(df.columns)} columns")
    return df


def _to_numeric(df: pd.DataFrame, columns) -> pd.DataFrame:
    out = df.copy()
    for col in columns:
        try:
            out[col] = pd.to_numeric(out[col], errors="raise").astype(float)
        except (ValueError, TypeError) as exc:
            raise DataLoadError(f"Non-numeric values in column {col!r}: {exc}") from exc
    return out


def clean_listings(raw: pd.DataFrame, region: str) -> pd.DataFrame:
    """
    Keep one region, project onto the analysis columns and drop incomplete
    and duplicated rows. A region with no listings gives an empty frame.
    """
    missing = [c for c in [REGION_COL] + list(RAW_COLUMNS) if c not in raw.columns]
    if missing:
        raise DataLoadError(f"Missing required columns in dataset: {missing}")

    df = raw.loc[raw[REGION_COL] == region, list(RAW_COLUMNS)].rename(columns=RAW_COLUMNS)
    logger.info(f"{len(df)} listings in region {region!r}")

    df = _to_numeric(df.dropna(), NUMERIC_COLS)
    df = df.drop_duplicates().reset_index(drop=True)
    logger.info(f"{len(df)} listings left after dropping missing and duplicate rows")
    return df


def load_listings(path, region: str = config.REGION) -> pd.DataFrame:
    return clean_listings(load_raw_listings(path), region)


def filter_outliers(
    df: pd.DataFrame, thresholds: config.OutlierThresholds = None
) -> pd.DataFrame:
    """
    Drop extreme or mis-entered listings.

    The bounds were read off scatterplots of the cleaned data; they are
    fixed inputs, not estimated here.
    """
    if thresholds is None:
        thresholds = config.OutlierThresholds()
    df = _to_numeric(df, ["baserent", "service", "room"])

    mask = (
        (df["baserent"] < thresholds.max_baserent)
        & (df["service"] < thresholds.max_service)
        & (df["room"] < thresholds.max_room)
        & (df["interior"] != thresholds.excluded_interior)
    )
    out = df.loc[mask].reset_index(drop=True)
    logger.info(f"Outlier filter kept {len(out)} of {len(df)} listings")

    if out.empty:
        raise InsufficientDataError("No listings left after outlier filtering")
    return out


def _encode(series: pd.Series, codes: dict) -> pd.Series:
    encoded = series.map(codes)
    unknown = series[encoded.isna()].unique()
    if len(unknown):
        raise ConfigurationError(
            f"Unmapped values in column {series.name!r}: {sorted(map(str, unknown))}"
        )
    return encoded.astype(float)


def encode_features(df: pd.DataFrame, interior_encoding: str = "binary") -> pd.DataFrame:
    """Turn amenity flags and interior quality into numeric columns for OLS."""
    if interior_encoding not in INTERIOR_CODES:
        raise ConfigurationError(f"Unknown interior encoding: {interior_encoding!r}")

    out = df.copy()
    for col in BOOLEAN_COLS:
        out[col] = _encode(out[col], BOOLEAN_CODES)
    out["interior"] = _encode(out["interior"], INTERIOR_CODES[interior_encoding])

    numeric = [c for c in out.columns if c not in BOOLEAN_COLS + ["interior"]]
    return _to_numeric(out, numeric)


def prepare_dataset(raw: pd.DataFrame, cfg: config.AnalysisConfig) -> pd.DataFrame:
    """Clean, filter and encode in one pass."""
    df = clean_listings(raw, cfg.region)
    if df.empty:
        raise InsufficientDataError(f"No complete listings for region {cfg.region!r}")
    df = filter_outliers(df, cfg.thresholds)
    return encode_features(df, cfg.interior_encoding)


def summarize(df: pd.DataFrame) -> pd.DataFrame:
    """Summary stats table (non-visual, for docs)."""
    return df.describe().T


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build the cleaned listings dataset")
    parser.add_argument("--raw", default=str(config.RAW_PATH), help="Raw immo_data CSV")
    parser.add_argument("--out", default=str(config.PROC_PATH), help="Processed CSV path")
    config.add_config_arguments(parser)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    try:
        cfg = config.config_from_args(args, args.raw)
        df = prepare_dataset(load_raw_listings(cfg.data_path), cfg)
    except RentModelError as exc:
        logger.error(f"make_dataset failed: {exc}")
        return 1

    out = pathlib.Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out, index=False)
    print(f"[make_dataset] saved {out} (rows={len(df)})")

    summary_path = out.parent / "summary_stats.csv"
    summarize(df).to_csv(summary_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
