"""
Base rent modeling script for the rental listings analysis.

This script:
- Loads and prepares the cleaned listings dataset
- Splits it into a fixed-size training sample and a held-out test set
- Fits three OLS models of base rent (area; area + rooms; all attributes)
- Evaluates each model on the test set (RMSE, MAE) against a mean baseline
- Cross validates the full model and computes standardized coefficients
- Saves model summaries, coefficient tables, predictions, metrics and plots
"""

import argparse
import logging
import numbers
import pathlib
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from sklearn.metrics import mean_absolute_error, mean_squared_error
from sklearn.model_selection import KFold, train_test_split

from rent_ols import config
from rent_ols.data.make_dataset import load_raw_listings, prepare_dataset
from rent_ols.errors import (
    ConfigurationError,
    InsufficientDataError,
    RentModelError,
    SingularFitError,
)

logger = logging.getLogger(__name__)

RESPONSE = "baserent"


# -----------------------------
# Model specs and fitted models
# -----------------------------

@dataclass(frozen=True)
class ModelSpec:
    """Response and the explicit predictor columns of one OLS model."""

    name: str
    predictors: Tuple[str, ...]
    response: str = RESPONSE

    def __post_init__(self):
        object.__setattr__(self, "predictors", tuple(self.predictors))
        if not self.predictors:
            raise ConfigurationError(f"Model {self.name!r} has no predictors")
        if self.response in self.predictors:
            raise ConfigurationError(
                f"Model {self.name!r} uses the response {self.response!r} as a predictor"
            )
        if len(set(self.predictors)) != len(self.predictors):
            raise ConfigurationError(f"Model {self.name!r} lists a predictor twice")


@dataclass(frozen=True)
class FittedModel:
    """OLS fit of one ModelSpec, with the statsmodels results kept for the summary."""

    spec: ModelSpec
    results: object

    @property
    def intercept(self) -> float:
        return float(self.results.params["const"])

    @property
    def coefficients(self) -> pd.Series:
        return self.results.params.drop(labels=["const"])

    @property
    def std_errors(self) -> pd.Series:
        return self.results.bse

    @property
    def p_values(self) -> pd.Series:
        return self.results.pvalues

    @property
    def residual_std_error(self) -> float:
        return float(np.sqrt(self.results.scale))

    @property
    def r_squared(self) -> float:
        return float(self.results.rsquared)

    @property
    def adj_r_squared(self) -> float:
        return float(self.results.rsquared_adj)

    @property
    def nobs(self) -> int:
        return int(self.results.nobs)

    def predict(self, df: pd.DataFrame) -> pd.Series:
        """Intercept plus the coefficient-weighted predictors, one value per row."""
        missing = [c for c in self.spec.predictors if c not in df.columns]
        if missing:
            raise ConfigurationError(f"Missing predictor columns for prediction: {missing}")
        X = sm.add_constant(df[list(self.spec.predictors)].astype(float), has_constant="add")
        return pd.Series(
            np.asarray(self.results.predict(X)), index=df.index, name=self.spec.name
        )

    def summary(self) -> str:
        return self.results.summary().as_text()


def default_model_specs(columns: Sequence[str], response: str = RESPONSE) -> Dict[str, ModelSpec]:
    """The three progressively richer models: area, area + rooms, everything."""
    return {
        "single": ModelSpec("single", ("area",), response),
        "two": ModelSpec("two", ("area", "room"), response),
        "full": ModelSpec("full", tuple(c for c in columns if c != response), response),
    }


# -----------------------------
# Split
# -----------------------------

@dataclass(frozen=True)
class DatasetSplit:
    train: pd.DataFrame
    test: pd.DataFrame


def split_dataset(
    df: pd.DataFrame,
    train_size: int = config.TRAIN_SIZE,
    random_state=config.RANDOM_STATE,
) -> DatasetSplit:
    """
    Draw a training sample of exactly train_size rows without replacement;
    the remaining rows form the test set.

    random_state is an int seed or a numpy RandomState; an int always gives
    the same split for the same input.
    """
    if len(df) == 0:
        raise InsufficientDataError("Cannot split an empty dataset")
    if isinstance(train_size, bool) or not isinstance(train_size, numbers.Integral):
        raise ConfigurationError(f"train_size must be an integer, got {train_size!r}")
    if train_size <= 0:
        raise ConfigurationError(f"train_size must be positive, got {train_size}")
    if train_size >= len(df):
        raise ConfigurationError(
            f"train_size {train_size} leaves no test rows in a dataset of {len(df)}"
        )

    if isinstance(random_state, numbers.Integral):
        random_state = np.random.RandomState(random_state)

    train, test = train_test_split(df, train_size=int(train_size), random_state=random_state)
    logger.info(f"Split {len(df)} listings into {len(train)} train / {len(test)} test")
    return DatasetSplit(train=train, test=test)


# -----------------------------
# Fit
# -----------------------------

def fit_ols_model(
    train: pd.DataFrame,
    spec: ModelSpec,
    max_condition: float = config.MAX_CONDITION_NUMBER,
) -> FittedModel:
    """
    Fit OLS of spec.response on spec.predictors plus an intercept.

    Raises SingularFitError when the design matrix is rank deficient or its
    condition number, with every column scaled to unit length, exceeds
    max_condition.
    """
    required = [spec.response] + list(spec.predictors)
    missing = [c for c in required if c not in train.columns]
    if missing:
        raise ConfigurationError(f"Missing required columns for model {spec.name!r}: {missing}")

    n_params = len(spec.predictors) + 1
    if len(train) <= n_params:
        raise InsufficientDataError(
            f"Model {spec.name!r} needs more than {n_params} rows, got {len(train)}"
        )

    X = sm.add_constant(train[list(spec.predictors)].astype(float), has_constant="add")
    y = train[spec.response].astype(float)

    if not np.isfinite(X.to_numpy()).all() or not np.isfinite(y.to_numpy()).all():
        raise ConfigurationError(f"Non-finite values in training data for model {spec.name!r}")

    design = X.to_numpy()
    rank = np.linalg.matrix_rank(design)
    if rank < X.shape[1]:
        raise SingularFitError(
            f"Design matrix for model {spec.name!r} has rank {rank} < {X.shape[1]} "
            f"columns; predictors {list(spec.predictors)} are collinear"
        )

    # unit-length columns so the check does not depend on units
    cond = np.linalg.cond(design / np.linalg.norm(design, axis=0))
    if not np.isfinite(cond) or cond > max_condition:
        raise SingularFitError(
            f"Design matrix for model {spec.name!r} is near singular "
            f"(condition number {cond:.3g} > {max_condition:.3g}); "
            f"predictors {list(spec.predictors)} are nearly collinear"
        )

    results = sm.OLS(y, X).fit()
    logger.info(
        f"Fitted {spec.name!r} on {len(train)} rows: R^2={results.rsquared:.3f}"
    )
    return FittedModel(spec=spec, results=results)


def fit_models(
    train: pd.DataFrame,
    specs: Dict[str, ModelSpec],
    max_condition: float = config.MAX_CONDITION_NUMBER,
) -> Dict[str, FittedModel]:
    return {name: fit_ols_model(train, spec, max_condition) for name, spec in specs.items()}


def coefficient_table(model: FittedModel) -> pd.DataFrame:
    """Coefficient, standard error, t and p value per parameter."""
    res = model.results
    return pd.DataFrame(
        {
            "variable": res.params.index,
            "coef": res.params.values,
            "std_err": res.bse.values,
            "t_value": res.tvalues.values,
            "p_value": res.pvalues.values,
        }
    )


def compute_standardized_coefficients(model: FittedModel, train: pd.DataFrame) -> pd.DataFrame:
    """
    Compute standardized coefficients:
    beta_std_j = beta_j * (sd(X_j) / sd(y))
    """
    coef = model.coefficients
    predictors = list(model.spec.predictors)

    X_std = train[predictors].std()
    y_std = train[model.spec.response].std()

    beta_std = coef * (X_std / y_std)

    coef_table = pd.DataFrame(
        {
            "variable": coef.index,
            "coef": coef.values,
            "std_coef": beta_std.values,
            "p_value": model.p_values.drop(labels=["const"]).values,
        }
    )

    return coef_table.sort_values("std_coef", key=lambda s: s.abs(), ascending=False)


# -----------------------------
# Evaluate
# -----------------------------

def _check_pair(actual, predicted):
    actual = np.asarray(actual, dtype=float)
    predicted = np.asarray(predicted, dtype=float)
    if actual.shape != predicted.shape:
        raise ConfigurationError(
            f"actual and predicted differ in shape: {actual.shape} vs {predicted.shape}"
        )
    if actual.size == 0:
        raise InsufficientDataError("Cannot score an empty set of predictions")
    return actual, predicted


def rmse(actual, predicted) -> float:
    actual, predicted = _check_pair(actual, predicted)
    # Compatible with older sklearn: take square root manually
    return float(mean_squared_error(actual, predicted) ** 0.5)


def mae(actual, predicted) -> float:
    actual, predicted = _check_pair(actual, predicted)
    return float(mean_absolute_error(actual, predicted))


@dataclass(frozen=True)
class Evaluation:
    predictions: pd.DataFrame
    metrics: pd.DataFrame


def evaluate_models(
    models: Dict[str, FittedModel], test: pd.DataFrame, response: str = RESPONSE
) -> Evaluation:
    """
    Predict every test row with every model.

    predictions has the actual response plus one column per model; metrics
    has one row per model. Only compare RMSEs computed on the same test set.
    """
    if test.empty:
        raise InsufficientDataError("Test set is empty")
    if response not in test.columns:
        raise ConfigurationError(f"Response column {response!r} missing from test set")

    actual = test[response].astype(float)
    predictions = pd.DataFrame({"actual": actual}, index=test.index)
    records = []
    for name, model in models.items():
        predicted = model.predict(test)
        predictions[name] = predicted
        records.append(
            {
                "model": name,
                "n_predictors": len(model.spec.predictors),
                "rmse": rmse(actual, predicted),
                "mae": mae(actual, predicted),
                "r_squared": model.r_squared,
                "adj_r_squared": model.adj_r_squared,
                "n_train": model.nobs,
            }
        )

    return Evaluation(predictions=predictions, metrics=pd.DataFrame.from_records(records))


def compute_baseline_metrics(y_train: pd.Series, y_test: pd.Series) -> dict:
    """Baseline model that predicts the train mean base rent for every listing."""
    if len(y_train) == 0:
        raise InsufficientDataError("Training set is empty")
    baseline_value = float(y_train.mean())
    y_pred = np.repeat(baseline_value, len(y_test))
    return {
        "baseline_mean": baseline_value,
        "mae": mae(y_test, y_pred),
        "rmse": rmse(y_test, y_pred),
    }


def cross_validate_ols(
    df: pd.DataFrame,
    spec: ModelSpec,
    n_splits: int = 5,
    random_state: int = config.RANDOM_STATE,
    max_condition: float = config.MAX_CONDITION_NUMBER,
) -> pd.DataFrame:
    """
    Simple k-fold cross validation for one OLS spec.
    Returns a DataFrame with MAE and RMSE per fold.
    """
    if isinstance(n_splits, bool) or not isinstance(n_splits, numbers.Integral) or n_splits < 2:
        raise ConfigurationError(f"n_splits must be an integer >= 2, got {n_splits!r}")
    if n_splits > len(df):
        raise ConfigurationError(f"n_splits {n_splits} exceeds {len(df)} rows")

    kf = KFold(n_splits=n_splits, shuffle=True, random_state=random_state)

    records = []
    for fold, (train_idx, test_idx) in enumerate(kf.split(df), start=1):
        train, test = df.iloc[train_idx], df.iloc[test_idx]

        model = fit_ols_model(train, spec, max_condition)
        predicted = model.predict(test)

        records.append(
            {
                "fold": fold,
                "mae": mae(test[spec.response], predicted),
                "rmse": rmse(test[spec.response], predicted),
            }
        )

    return pd.DataFrame.from_records(records)


# -----------------------------
# Pipeline
# -----------------------------

@dataclass(frozen=True)
class AnalysisResult:
    dataset: pd.DataFrame
    split: DatasetSplit
    models: Dict[str, FittedModel]
    evaluation: Evaluation
    baseline: dict


def run_analysis(cfg: config.AnalysisConfig, raw: Optional[pd.DataFrame] = None) -> AnalysisResult:
    """
    Run every stage once, from raw listings to test-set metrics.

    Any stage failure propagates; no partial result is returned.
    """
    if raw is None:
        raw = load_raw_listings(cfg.data_path)

    df = prepare_dataset(raw, cfg)
    split = split_dataset(df, cfg.train_size, np.random.RandomState(cfg.random_state))

    models = fit_models(
        split.train, default_model_specs(df.columns), cfg.max_condition_number
    )
    evaluation = evaluate_models(models, split.test)
    baseline = compute_baseline_metrics(split.train[RESPONSE], split.test[RESPONSE])

    return AnalysisResult(
        dataset=df, split=split, models=models, evaluation=evaluation, baseline=baseline
    )


def write_outputs(result: AnalysisResult, out_dir: pathlib.Path) -> None:
    """Model summaries, coefficient tables, predictions and metrics as files."""
    out_dir = pathlib.Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    for name, model in result.models.items():
        with open(out_dir / f"ols_baserent_{name}_summary.txt", "w") as f:
            f.write(model.summary())
        coefficient_table(model).to_csv(
            out_dir / f"ols_baserent_{name}_coefficients.csv", index=False
        )

    result.evaluation.predictions.to_csv(out_dir / "ols_baserent_test_predictions.csv")
    result.evaluation.metrics.to_csv(out_dir / "ols_baserent_metrics.csv", index=False)
    pd.DataFrame([result.baseline]).to_csv(
        out_dir / "baseline_baserent_metrics.csv", index=False
    )


# -----------------------------
# Main run
# -----------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="OLS models of base rent")
    parser.add_argument("--data", default=str(config.RAW_PATH), help="Raw immo_data CSV")
    config.add_config_arguments(parser)
    parser.add_argument("--train-size", type=int, default=config.TRAIN_SIZE)
    parser.add_argument("--seed", type=int, default=config.RANDOM_STATE)
    parser.add_argument("--max-condition", type=float, default=config.MAX_CONDITION_NUMBER)
    parser.add_argument("--cv-folds", type=int, default=5)
    parser.add_argument("--outputs", default=str(config.OUTPUTS_DIR))
    parser.add_argument("--figures", default=str(config.FIGURES_DIR))
    parser.add_argument("--no-figures", action="store_true", help="Skip writing plots")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    try:
        cfg = config.config_from_args(
            args,
            args.data,
            train_size=args.train_size,
            random_state=args.seed,
            max_condition_number=args.max_condition,
        )
        if args.cv_folds < 2:
            raise ConfigurationError(f"--cv-folds must be at least 2, got {args.cv_folds}")

        # 1-5. Load, prepare, split, fit, evaluate
        result = run_analysis(cfg)
    except RentModelError as exc:
        logger.error(f"Analysis failed: {exc}")
        return 1

    # 6. Cross validation of the full model, reported on its own
    try:
        cv_results = cross_validate_ols(
            result.dataset,
            result.models["full"].spec,
            args.cv_folds,
            cfg.random_state,
            cfg.max_condition_number,
        )
    except RentModelError as exc:
        logger.warning(f"Cross validation skipped: {exc}")
        cv_results = None

    print(f"Loaded {len(result.dataset)} listings for {cfg.region}")
    print("\nBaseline model:")
    print(result.baseline)

    for name, model in result.models.items():
        print(f"\nOLS model '{name}' coefficients:")
        print(coefficient_table(model))

    print("\nTest set metrics:")
    print(result.evaluation.metrics)

    outputs_dir = pathlib.Path(args.outputs)
    write_outputs(result, outputs_dir)
    if cv_results is not None:
        cv_results.to_csv(outputs_dir / "ols_baserent_cv_metrics.csv", index=False)
        print("\nCross validation results (MAE and RMSE per fold):")
        print(cv_results.describe()[["mae", "rmse"]])

    # 7. Standardized coefficients and plots for report
    std_coef = compute_standardized_coefficients(result.models["full"], result.split.train)
    std_coef.to_csv(outputs_dir / "ols_baserent_standardized_coefficients.csv", index=False)

    if not args.no_figures:
        from rent_ols.visualization.figures import PlotStyle, save_model_figures

        save_model_figures(result, std_coef, pathlib.Path(args.figures), PlotStyle())

    print("\nDone. Outputs written to:")
    print(f"  {outputs_dir}")
    if not args.no_figures:
        print(f"  {args.figures}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
