import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402

from rent_ols import config  # noqa: E402


def make_raw_listings(n=80, region="Berlin", seed=0):
    rs = np.random.RandomState(seed)
    area = rs.uniform(30, 150, n).round(1)
    rooms = np.clip(np.round(area / 30) + rs.randint(0, 2, n), 1, 6).astype(float)
    return pd.DataFrame(
        {
            "regio1": region,
            "baseRent": (100 + 12 * area + 50 * rooms + rs.normal(0, 60, n)).round(2),
            "serviceCharge": (1.5 * area + rs.normal(0, 20, n)).clip(20).round(2),
            "livingSpace": area,
            "noRooms": rooms,
            "yearConstructed": rs.randint(1900, 2020, n).astype(float),
            "noParkSpaces": rs.randint(0, 3, n).astype(float),
            "balcony": rs.rand(n) < 0.5,
            "hasKitchen": rs.rand(n) < 0.5,
            "cellar": rs.rand(n) < 0.5,
            "garden": rs.rand(n) < 0.5,
            "interiorQual": rs.choice(["simple", "normal", "sophisticated", "luxury"], n,
                                      p=[0.1, 0.5, 0.3, 0.1]),
            "newlyConst": rs.rand(n) < 0.5,
            "lift": rs.rand(n) < 0.5,
        }
    )


@pytest.fixture
def raw_listings():
    """Berlin listings with missing values, duplicates and outliers, plus another region."""
    berlin = make_raw_listings(80, "Berlin", seed=0)
    berlin.loc[0, "serviceCharge"] = np.nan
    berlin.loc[1, "interiorQual"] = np.nan
    berlin.loc[2, "baseRent"] = 25000.0
    berlin.loc[3, "serviceCharge"] = 2500.0
    berlin.loc[4, "noRooms"] = 40.0
    berlin.loc[5, "interiorQual"] = "simple"
    dupes = berlin.iloc[10:13]
    other = make_raw_listings(15, "Bayern", seed=1)
    return pd.concat([berlin, dupes, other], ignore_index=True)


@pytest.fixture
def raw_csv(tmp_path, raw_listings):
    path = tmp_path / "immo_data.csv"
    raw_listings.to_csv(path, index=False)
    return path


@pytest.fixture
def analysis_config(raw_csv):
    return config.AnalysisConfig(data_path=raw_csv, region="Berlin", train_size=40, random_state=7)


@pytest.fixture
def linear_frame():
    """baserent = 100 + 15 * area plus small noise, ten listings."""
    rs = np.random.RandomState(1)
    area = np.arange(30.0, 130.0, 10.0)
    return pd.DataFrame({"baserent": 100 + 15 * area + rs.normal(0, 5, len(area)), "area": area})
