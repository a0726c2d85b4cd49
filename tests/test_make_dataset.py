import numpy as np
import pandas as pd
import pytest

from rent_ols import config
from rent_ols.data.make_dataset import (
    BOOLEAN_COLS,
    COLUMNS,
    clean_listings,
    encode_features,
    filter_outliers,
    load_listings,
    load_raw_listings,
    main,
    prepare_dataset,
)
from rent_ols.errors import ConfigurationError, DataLoadError, InsufficientDataError


# -----------------------------
# Loading
# -----------------------------

def test_load_missing_file_raises(tmp_path):
    with pytest.raises(DataLoadError):
        load_raw_listings(tmp_path / "nope.csv")


def test_load_empty_file_raises(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("")
    with pytest.raises(DataLoadError):
        load_raw_listings(path)


def test_load_missing_columns_raises(tmp_path, raw_listings):
    path = tmp_path / "partial.csv"
    raw_listings.drop(columns=["interiorQual", "lift"]).to_csv(path, index=False)
    with pytest.raises(DataLoadError, match="interiorQual"):
        load_raw_listings(path)


def test_load_reads_all_rows(raw_csv, raw_listings):
    df = load_raw_listings(raw_csv)
    assert len(df) == len(raw_listings)


# -----------------------------
# Cleaning
# -----------------------------

def test_clean_has_no_missing_or_duplicate_rows(raw_listings):
    df = clean_listings(raw_listings, "Berlin")
    assert list(df.columns) == COLUMNS
    assert not df.isna().any().any()
    assert not df.duplicated().any()
    # two incomplete rows and three duplicates removed
    assert len(df) == 78


def test_clean_keeps_only_target_region(raw_listings):
    df = clean_listings(raw_listings, "Bayern")
    assert len(df) == 15


def test_clean_absent_region_gives_empty_frame(raw_listings):
    df = clean_listings(raw_listings, "Hamburg")
    assert df.empty
    assert list(df.columns) == COLUMNS


def test_clean_does_not_mutate_input(raw_listings):
    before = raw_listings.copy()
    clean_listings(raw_listings, "Berlin")
    pd.testing.assert_frame_equal(raw_listings, before)


def test_clean_non_numeric_rent_raises(raw_listings):
    raw = raw_listings.astype({"baseRent": object})
    raw.loc[3, "baseRent"] = "n/a"
    with pytest.raises(DataLoadError, match="baserent"):
        clean_listings(raw, "Berlin")
    with pytest.raises(DataLoadError):
        prepare_dataset(raw, config.AnalysisConfig())


def test_clean_converts_numeric_strings(raw_listings):
    raw = raw_listings.astype({"noRooms": object})
    raw.loc[6, "noRooms"] = "3"
    df = clean_listings(raw, "Berlin")
    assert df["room"].dtype == float


def test_load_listings_composes_load_and_clean(raw_csv):
    df = load_listings(raw_csv, "Berlin")
    assert len(df) == 78


# -----------------------------
# Outliers
# -----------------------------

def test_filter_outliers_rows_satisfy_all_thresholds(raw_listings):
    cleaned = clean_listings(raw_listings, "Berlin")
    thresholds = config.OutlierThresholds()
    df = filter_outliers(cleaned, thresholds)

    assert len(df) < len(cleaned)
    assert (df["baserent"] < thresholds.max_baserent).all()
    assert (df["service"] < thresholds.max_service).all()
    assert (df["room"] < thresholds.max_room).all()
    assert (df["interior"] != "simple").all()


def test_filter_outliers_custom_thresholds(raw_listings):
    cleaned = clean_listings(raw_listings, "Berlin")
    thresholds = config.OutlierThresholds(max_baserent=1500, max_room=4, excluded_interior="luxury")
    df = filter_outliers(cleaned, thresholds)

    assert (df["baserent"] < 1500).all()
    assert (df["room"] < 4).all()
    assert "luxury" not in set(df["interior"])


def test_filter_outliers_non_numeric_values_raise(raw_listings):
    cleaned = clean_listings(raw_listings, "Berlin").astype({"service": object})
    cleaned.loc[0, "service"] = "on request"
    with pytest.raises(DataLoadError, match="service"):
        filter_outliers(cleaned)


def test_filter_outliers_empty_input_raises(raw_listings):
    empty = clean_listings(raw_listings, "Hamburg")
    with pytest.raises(InsufficientDataError):
        filter_outliers(empty)


def test_filter_outliers_everything_removed_raises(raw_listings):
    cleaned = clean_listings(raw_listings, "Berlin")
    with pytest.raises(InsufficientDataError):
        filter_outliers(cleaned, config.OutlierThresholds(max_baserent=1))


# -----------------------------
# Encoding
# -----------------------------

def test_encode_keeps_shape_and_is_numeric(raw_listings):
    filtered = filter_outliers(clean_listings(raw_listings, "Berlin"))
    encoded = encode_features(filtered)

    assert encoded.shape == filtered.shape
    assert list(encoded.columns) == list(filtered.columns)
    assert all(np.issubdtype(t, np.floating) for t in encoded.dtypes)
    for col in BOOLEAN_COLS + ["interior"]:
        assert set(encoded[col].unique()) <= {0.0, 1.0}


def test_encode_interior_binary_collapses_upscale_levels():
    df = pd.DataFrame(
        {
            "baserent": [500.0, 600.0, 700.0],
            "interior": ["normal", "sophisticated", "luxury"],
            **{col: [True, False, True] for col in BOOLEAN_COLS},
        }
    )
    encoded = encode_features(df)
    assert encoded["interior"].tolist() == [0.0, 1.0, 1.0]
    assert encoded["balcony"].tolist() == [1.0, 0.0, 1.0]


def test_encode_interior_ordinal():
    df = pd.DataFrame(
        {
            "baserent": [400.0, 500.0, 600.0, 700.0],
            "interior": ["simple", "normal", "sophisticated", "luxury"],
            **{col: [True, False, True, False] for col in BOOLEAN_COLS},
        }
    )
    encoded = encode_features(df, interior_encoding="ordinal")
    assert encoded["interior"].tolist() == [0.0, 1.0, 2.0, 3.0]


def test_encode_accepts_string_booleans():
    df = pd.DataFrame(
        {
            "baserent": [500.0, 600.0],
            "interior": ["normal", "luxury"],
            **{col: ["True", "False"] for col in BOOLEAN_COLS},
        }
    )
    encoded = encode_features(df)
    assert encoded["lift"].tolist() == [1.0, 0.0]


def test_encode_unmapped_interior_raises():
    df = pd.DataFrame(
        {
            "baserent": [500.0],
            "interior": ["simple"],
            **{col: [True] for col in BOOLEAN_COLS},
        }
    )
    with pytest.raises(ConfigurationError, match="simple"):
        encode_features(df)


def test_encode_unknown_boolean_raises():
    df = pd.DataFrame(
        {
            "baserent": [500.0],
            "interior": ["normal"],
            **{col: ["maybe"] for col in BOOLEAN_COLS},
        }
    )
    with pytest.raises(ConfigurationError):
        encode_features(df)


def test_encode_unknown_scheme_raises(raw_listings):
    filtered = filter_outliers(clean_listings(raw_listings, "Berlin"))
    with pytest.raises(ConfigurationError):
        encode_features(filtered, interior_encoding="onehot")


# -----------------------------
# Whole preparation
# -----------------------------

def test_prepare_dataset_absent_region_raises(raw_listings):
    cfg = config.AnalysisConfig(region="Hamburg")
    with pytest.raises(InsufficientDataError, match="Hamburg"):
        prepare_dataset(raw_listings, cfg)


def test_prepare_dataset_runs_all_stages(raw_listings):
    df = prepare_dataset(raw_listings, config.AnalysisConfig(region="Berlin"))
    assert not df.isna().any().any()
    assert (df["baserent"] < config.MAX_BASERENT).all()
    assert set(df["interior"].unique()) <= {0.0, 1.0}


def test_main_applies_threshold_and_encoding_flags(tmp_path, raw_csv):
    out = tmp_path / "processed" / "listings.csv"
    code = main([
        "--raw", str(raw_csv),
        "--out", str(out),
        "--max-baserent", "1500",
        "--interior-encoding", "ordinal",
    ])
    assert code == 0

    df = pd.read_csv(out)
    assert (df["baserent"] < 1500).all()
    assert set(df["interior"].unique()) <= {1.0, 2.0, 3.0}
    assert (tmp_path / "processed" / "summary_stats.csv").exists()


def test_main_reports_bad_input(tmp_path):
    assert main(["--raw", str(tmp_path / "missing.csv"), "--out", str(tmp_path / "o.csv")]) == 1
