#EDA visuals used to pick the outlier thresholds

import sys

from rent_ols import config
from rent_ols.data.make_dataset import filter_outliers, load_listings
from rent_ols.visualization.figures import PlotStyle, plot_outlier_scatterplots

FIG_DIR = config.FIGURES_DIR / "eda"

style = PlotStyle(figsize=(7, 5), point_color="tab:green", alpha=0.4)

df = load_listings(config.RAW_PATH, config.REGION)
if df.empty:
    print(f"[eda_visuals] no listings for {config.REGION}")
    sys.exit(1)

# ---- Before outlier removal
plot_outlier_scatterplots(df, FIG_DIR / "raw", style)

# ---- After outlier removal
plot_outlier_scatterplots(filter_outliers(df), FIG_DIR / "filtered", style)

print("[eda_visuals] saved figures to:", FIG_DIR)
