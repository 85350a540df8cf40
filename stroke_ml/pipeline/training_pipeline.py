"""
Main Training Pipeline

Loads the stroke dataset, tunes every configured model family on shared
repeated cross-validation resamples, compares their AUC and evaluates the
models on a held-out test split.
"""

from __future__ import annotations

import warnings
from sklearn.exceptions import ConvergenceWarning
warnings.filterwarnings("ignore", category=ConvergenceWarning)
# Suppress MLflow deprecation warnings from their internal code
warnings.filterwarnings("ignore", message=".*artifact_path.*deprecated.*", category=FutureWarning)
warnings.filterwarnings("ignore", message=".*artifact_path.*deprecated.*", category=UserWarning)

import argparse
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import joblib
import numpy as np
import pandas as pd
import yaml
from imblearn.over_sampling import SMOTE
from imblearn.pipeline import Pipeline as ImbPipeline
from sklearn.model_selection import train_test_split

from ..data.loader import load_stroke_data, split_features_target
from ..data.schema import TARGET_COLUMN
from ..reporting.plots import (
    create_eda_plots,
    plot_confusion_matrix,
    plot_resample_distributions,
    plot_roc_curves,
    plot_tuning_profiles,
)
from ..reporting.report import render_report
from ..utils.experiment_tracking import ExperimentTracker
from ..utils.model_utils import ModelComparator, ModelEvaluator, positive_scores
from .cross_validation import ModelResult, RepeatedCVTrainer, make_resamples
from .feature_engineering import create_preprocessing_pipeline
from .models import MODEL_LABELS, available_models, create_model, get_param_grid
from .preprocessing import DataValidator

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def convert_numpy_types(obj):
    """Convert numpy types to native Python types for YAML serialization."""
    if isinstance(obj, dict):
        return {k: convert_numpy_types(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_types(v) for v in obj]
    elif hasattr(obj, 'item'):  # numpy scalar
        return obj.item()
    elif hasattr(obj, 'tolist'):  # numpy array
        return obj.tolist()
    else:
        return obj


class StrokeMLPipeline:
    """Model comparison pipeline for stroke prediction."""

    def __init__(self, config: Dict):
        self.config = config
        self.seed = config.get("random_seed", 42)
        self.metric = config.get("cross_validation", {}).get("metric", "roc_auc")

        self.results: Dict[str, ModelResult] = {}
        self.best_model_name: Optional[str] = None
        self.model: Optional[ImbPipeline] = None
        self.data_summary: Dict[str, Any] = {}

        # trackers & helpers
        self.experiment_tracker = ExperimentTracker(config)
        self.comparator = ModelComparator()
        self.evaluator = ModelEvaluator()

    # ---------- Data ----------
    def load_data(self, data_path: str) -> pd.DataFrame:
        data_cfg = self.config.get("data", {})
        df = load_stroke_data(
            data_path,
            use_dask=data_cfg.get("use_dask", False),
            drop_rare_gender=data_cfg.get("drop_rare_gender", True),
            unknown_smoking_as_missing=data_cfg.get("unknown_smoking_as_missing", False),
        )
        self.data_summary = {
            "n_records": int(len(df)),
            "n_predictors": int(df.shape[1] - 1),
            "n_stroke": int(df[TARGET_COLUMN].sum()),
            "prevalence": float(df[TARGET_COLUMN].mean()),
            "missing_values": {col: int(n) for col, n in df.isnull().sum().items() if n > 0},
        }
        return df

    def validate_data(self, df: pd.DataFrame) -> Dict[str, List[str]]:
        logger.info("Validating data quality...")
        validator = DataValidator()
        validator.setup_stroke_rules()
        violations = validator.validate(df)
        if violations:
            logger.warning(f"Found data quality issues in {len(violations)} columns")
            for feature, messages in violations.items():
                logger.warning(f"  {feature}: {'; '.join(messages)}")
        else:
            logger.info("Data validation passed")
        return violations

    def prepare_features(self, df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
        X, y = split_features_target(df)
        logger.info(f"Prepared features: {len(X.columns)} columns (excluded: {[TARGET_COLUMN]})")
        return X, y

    # ---------- Splits ----------
    def split_data(self, X: pd.DataFrame, y: pd.Series):
        """Stratified train/test split."""
        test_size = self.config.get("data", {}).get("test_size", 0.2)
        X_train, X_test, y_train, y_test = train_test_split(
            X, y, test_size=test_size, stratify=y, random_state=self.seed
        )
        X_train, y_train = X_train.reset_index(drop=True), y_train.reset_index(drop=True)
        X_test, y_test = X_test.reset_index(drop=True), y_test.reset_index(drop=True)

        logger.info(f"Train: {len(X_train)} rows (prevalence {y_train.mean():.3f}), "
                    f"test: {len(X_test)} rows (prevalence {y_test.mean():.3f})")
        self.data_summary.update({"n_train": int(len(X_train)), "n_test": int(len(X_test))})
        return X_train, X_test, y_train, y_test

    # ---------- Preprocess ----------
    def build_pipeline(self, name: str) -> ImbPipeline:
        """Preprocessing steps, optional SMOTE and the model family's estimator."""
        steps: List[Tuple[str, Any]] = []

        for i, transformer in enumerate(create_preprocessing_pipeline(self.config)):
            step_name = f"step_{i}_{transformer.__class__.__name__.lower()}"
            steps.append((step_name, transformer))

        imb_cfg = self.config.get("imbalance", {})
        if imb_cfg.get("method") == "smote":
            sp = imb_cfg.get("smote", {})
            steps.append(
                (
                    "smote",
                    SMOTE(
                        sampling_strategy=sp.get("sampling_strategy", "auto"),
                        k_neighbors=sp.get("k_neighbors", 5),
                        random_state=sp.get("random_state", self.seed),
                    ),
                )
            )
        steps.append(("model", create_model(name, self.config)))
        return ImbPipeline(steps)

    # ---------- Training ----------
    def model_names(self) -> List[str]:
        names = self.config.get("training", {}).get("models") or available_models()
        unknown = [name for name in names if name not in available_models()]
        if unknown:
            raise ValueError(f"Unknown models: {unknown}. Available: {available_models()}")
        return list(names)

    def train_models(self, X: pd.DataFrame, y: pd.Series) -> Dict[str, ModelResult]:
        logger.info("Starting model training...")
        cv_cfg = self.config.get("cross_validation", {})
        resamples = make_resamples(
            y,
            n_splits=cv_cfg.get("n_splits", 10),
            n_repeats=cv_cfg.get("n_repeats", 3),
            random_state=self.seed,
        )
        trainer = RepeatedCVTrainer(
            metric=self.metric,
            error_score=cv_cfg.get("error_score", np.nan),
            show_progress=cv_cfg.get("show_progress", True),
        )

        for name in self.model_names():
            with self.experiment_tracker.start_run(run_name=name, nested=True):
                result = trainer.fit(name, self.build_pipeline(name), get_param_grid(name, self.config),
                                     X, y, resamples)
                self.experiment_tracker.log_params(result.best_params, prefix=name)
                self.experiment_tracker.log_metrics({
                    f"cv_{self.metric}_mean": result.best_score,
                    f"cv_{self.metric}_std": result.best_score_std,
                    "fit_time_seconds": result.fit_time,
                })
            self.results[name] = result
            self.comparator.add_result(result)

        return self.results

    def compare_models(self) -> Dict[str, pd.DataFrame]:
        """Resample summary, paired differences and the selected best model."""
        if not self.results:
            raise ValueError("No models trained yet")

        summary = self.comparator.summary(self.metric)
        differences = self.comparator.pairwise_differences(self.metric)
        self.best_model_name = self.comparator.get_best_model(self.metric)
        if self.best_model_name is None:
            raise RuntimeError(f"No model produced a valid {self.metric}")
        self.model = self.results[self.best_model_name].estimator

        logger.info(f"Resampled {self.metric} summary:\n{summary.round(4).to_string()}")
        logger.info(f"Best model: {self.best_model_name} "
                    f"({self.metric} {summary.loc[self.best_model_name, 'mean']:.4f})")
        return {"summary": summary, "differences": differences}

    # ---------- Evaluation ----------
    def evaluate_model(self, X: pd.DataFrame, y: pd.Series) -> Dict[str, Dict[str, float]]:
        """Held-out metrics for every tuned model."""
        logger.info("Evaluating models on the test set...")
        if not self.results:
            raise ValueError("Model not trained yet")

        metrics = {}
        for name, result in self.results.items():
            y_score = positive_scores(result.estimator, X)
            y_pred = result.estimator.predict(X)
            metrics[name] = self.evaluator.calculate_metrics(y.to_numpy(), y_pred, y_score)
            logger.info(f"[{name}] test ROC-AUC: {metrics[name]['roc_auc']:.4f}, "
                        f"sensitivity: {metrics[name]['sensitivity']:.3f}, "
                        f"specificity: {metrics[name]['specificity']:.3f}")
        return metrics

    def mars_terms(self) -> Optional[List[str]]:
        """Retained basis terms of the tuned MARS model, if MARS was trained."""
        result = self.results.get("mars")
        if result is None:
            return None
        terms = result.estimator.named_steps["model"].basis_descriptions()
        logger.info(f"MARS kept {len(terms)} terms: {terms}")
        return terms

    # ---------- Plots ----------
    def create_model_plots(self, X_test: pd.DataFrame, y_test: pd.Series,
                           confusion: pd.DataFrame, figures_dir: Path) -> List[Path]:
        figures_dir.mkdir(parents=True, exist_ok=True)
        curves = {name: (y_test.to_numpy(), positive_scores(result.estimator, X_test))
                  for name, result in self.results.items()}
        return [
            plot_resample_distributions(self.comparator.resamples_frame(), figures_dir, self.metric),
            plot_tuning_profiles({name: r.cv_results for name, r in self.results.items()},
                                 figures_dir, self.metric),
            plot_roc_curves(curves, figures_dir),
            plot_confusion_matrix(confusion, figures_dir, title=f"Confusion matrix ({self.best_model_name})"),
        ]

    # ---------- Artifacts ----------
    def save_artifacts(self, output_dir: str, comparison: Dict[str, pd.DataFrame],
                       test_metrics: Dict[str, Dict[str, float]], confusion: pd.DataFrame):
        out = Path(output_dir)
        (out / "models").mkdir(parents=True, exist_ok=True)
        logger.info(f"Saving artifacts to {out}")

        # Fitted pipelines (preprocessing + model)
        joblib.dump(self.model, out / "best_model.joblib")
        for name, result in self.results.items():
            joblib.dump(result.estimator, out / "models" / f"{name}.joblib")

        comparison["summary"].to_csv(out / "cv_summary.csv")
        self.comparator.resamples_frame().to_csv(out / "resamples.csv", index=False)
        tuning = pd.concat(
            [r.cv_results.assign(model=name) for name, r in self.results.items()], ignore_index=True
        )
        tuning.to_csv(out / "tuning_results.csv", index=False)
        comparison["differences"].to_csv(out / "pairwise_differences.csv", index=False)
        confusion.to_csv(out / "confusion_matrix.csv")

        clean_metrics = convert_numpy_types({
            "best_model": self.best_model_name,
            "best_params": self.results[self.best_model_name].best_params,
            "models": test_metrics,
        })
        clean_config = convert_numpy_types(self.config)
        (out / "test_metrics.yaml").write_text(yaml.dump(clean_metrics), encoding="utf-8")
        (out / "training_config.yaml").write_text(yaml.dump(clean_config), encoding="utf-8")

        self.experiment_tracker.log_dict(clean_config, "config.yaml")
        self.experiment_tracker.log_dict(clean_metrics, "test_metrics.yaml")
        logger.info("Artifacts saved successfully")

    # ---------- Orchestration ----------
    def run_pipeline(self, data_path: str, output_dir: str, make_plots: bool = True) -> Dict[str, Any]:
        logger.info("Starting stroke model comparison pipeline...")
        start_time = time.time()
        out = Path(output_dir)
        figures_dir = out / "figures"
        run_name = self.config.get("mlflow", {}).get("run_name", "stroke_model_comparison")

        with self.experiment_tracker.start_run(run_name):
            self.experiment_tracker.log_params(self.config)

            # Data
            df = self.load_data(data_path)
            self.validate_data(df)
            figures: List[Path] = []
            if make_plots:
                figures.extend(create_eda_plots(df, figures_dir))
            X, y = self.prepare_features(df)
            X_train, X_test, y_train, y_test = self.split_data(X, y)

            # Train and compare on shared resamples
            self.train_models(X_train, y_train)
            comparison = self.compare_models()

            # Held-out evaluation
            test_metrics = self.evaluate_model(X_test, y_test)
            best_predictions = self.model.predict(X_test)
            confusion = self.evaluator.confusion_matrix_frame(y_test.to_numpy(), best_predictions)
            classification_text = self.evaluator.generate_classification_report(y_test.to_numpy(), best_predictions)
            logger.info(f"Confusion matrix ({self.best_model_name}, test set):\n{confusion.to_string()}")

            best_metrics = test_metrics[self.best_model_name]
            self.experiment_tracker.log_metrics({
                f"cv_{self.metric}_mean": float(comparison["summary"].loc[self.best_model_name, "mean"]),
                **{f"test_{k}": v for k, v in best_metrics.items()},
            })

            self.save_artifacts(output_dir, comparison, test_metrics, confusion)
            if make_plots:
                figures.extend(self.create_model_plots(X_test, y_test, confusion, figures_dir))

            render_report(
                out / "report.md",
                data_summary=self.data_summary,
                results=self.results,
                comparison=comparison,
                best_model=self.best_model_name,
                test_metrics=test_metrics,
                confusion=confusion,
                metric=self.metric,
                figures=[p.relative_to(out) for p in figures],
                model_labels=MODEL_LABELS,
                classification_text=classification_text,
                mars_terms=self.mars_terms(),
            )

            self.experiment_tracker.log_artifacts(output_dir)
            self.experiment_tracker.log_model(self.model, "model")

        elapsed_time = time.time() - start_time
        logger.info(f"Pipeline completed in {elapsed_time:.2f} seconds")
        logger.info(f"Best model: {self.best_model_name}, test ROC-AUC: {best_metrics['roc_auc']:.4f}")

        return {
            "best_model": self.best_model_name,
            "best_params": self.results[self.best_model_name].best_params,
            f"cv_{self.metric}": float(comparison["summary"].loc[self.best_model_name, "mean"]),
            **{f"test_{k}": v for k, v in best_metrics.items()},
        }


# =====================
# CLI entrypoint
# =====================

def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Compare stroke prediction models")
    parser.add_argument("--config", type=str, required=True, help="Path to training configuration file")
    parser.add_argument("--data", type=str, default=None, help="Path to the stroke CSV (default: data.path from config)")
    parser.add_argument("--output", type=str, default="./models", help="Output directory for artifacts")
    parser.add_argument("--models", nargs="+", choices=available_models(),
                        help="Model families to compare (default: all configured)")
    parser.add_argument("--skip-plots", action="store_true", help="Do not write figures")
    args = parser.parse_args(argv)

    with open(args.config, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f)

    data_path = args.data or config.get("data", {}).get("path")
    if not data_path:
        parser.error("no data path given; pass --data or set data.path in the config")

    if args.models:
        config.setdefault("training", {})["models"] = args.models

    seed = config.get("random_seed", 42)
    np.random.seed(seed)

    make_plots = config.get("reporting", {}).get("make_plots", True) and not args.skip_plots
    pipeline = StrokeMLPipeline(config)
    pipeline.run_pipeline(data_path, args.output, make_plots=make_plots)

    print("Training completed! Artifacts in:", args.output)


if __name__ == "__main__":
    main()
