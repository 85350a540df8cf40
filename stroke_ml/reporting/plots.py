"""
Exploratory and model-comparison figures, written as PNG files.
"""

import logging
from pathlib import Path
from typing import Dict, List, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.metrics import roc_curve

from ..data.schema import CATEGORICAL_FEATURES, NUMERIC_FEATURES, TARGET_COLUMN

logger = logging.getLogger(__name__)


def _save(path: Path) -> Path:
    plt.tight_layout()
    plt.savefig(path, dpi=150)
    plt.close()
    logger.info(f"Saved figure {path.name}")
    return path


def plot_class_balance(df: pd.DataFrame, out_dir: Path) -> Path:
    counts = df[TARGET_COLUMN].value_counts().sort_index()
    plt.figure(figsize=(5, 4))
    bars = plt.bar([str(i) for i in counts.index], counts.values, color=['#4c72b0', '#c44e52'][:len(counts)])
    for bar, value in zip(bars, counts.values):
        plt.text(bar.get_x() + bar.get_width() / 2, value, f"{value} ({value / counts.sum():.1%})",
                 ha='center', va='bottom', fontsize=8)
    plt.xlabel(TARGET_COLUMN)
    plt.ylabel("patients")
    plt.title("Class balance")
    return _save(out_dir / "class_balance.png")


def plot_numeric_distributions(df: pd.DataFrame, out_dir: Path) -> Path:
    features = [f for f in NUMERIC_FEATURES if f in df.columns]
    fig, axes = plt.subplots(1, len(features), figsize=(5 * len(features), 4), squeeze=False)
    for ax, feature in zip(axes[0], features):
        for label, color in ((0, '#4c72b0'), (1, '#c44e52')):
            values = df.loc[df[TARGET_COLUMN] == label, feature].dropna()
            ax.hist(values, bins=30, density=True, alpha=0.5, color=color, label=f"{TARGET_COLUMN}={label}")
        ax.set_title(feature)
        ax.legend(fontsize=8)
    return _save(out_dir / "numeric_distributions.png")


def plot_categorical_rates(df: pd.DataFrame, out_dir: Path) -> Path:
    features = [f for f in CATEGORICAL_FEATURES if f in df.columns]
    n_cols = 3
    n_rows = int(np.ceil(len(features) / n_cols))
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(5 * n_cols, 3.5 * n_rows), squeeze=False)
    for ax, feature in zip(axes.ravel(), features):
        rates = df.groupby(feature, observed=True)[TARGET_COLUMN].mean()
        ax.bar([str(level) for level in rates.index], rates.values, color='#55a868')
        ax.set_title(f"{TARGET_COLUMN} rate by {feature}")
        ax.tick_params(axis='x', rotation=30, labelsize=8)
    for ax in axes.ravel()[len(features):]:
        ax.axis('off')
    return _save(out_dir / "categorical_stroke_rates.png")


def plot_missing_values(df: pd.DataFrame, out_dir: Path) -> Path:
    missing = df.isnull().mean().sort_values(ascending=False)
    plt.figure(figsize=(7, 4))
    plt.barh(missing.index[::-1], missing.values[::-1], color='#8172b2')
    plt.xlabel("fraction missing")
    plt.title("Missing values per column")
    return _save(out_dir / "missing_values.png")


def plot_correlation_matrix(df: pd.DataFrame, out_dir: Path) -> Path:
    numeric = df[[f for f in NUMERIC_FEATURES if f in df.columns] + [TARGET_COLUMN]].astype(float)
    plt.figure(figsize=(6, 5))
    sns.heatmap(numeric.corr(), annot=True, fmt='.2f', cmap='coolwarm', vmin=-1, vmax=1, square=True)
    plt.title("Correlation (numeric features)")
    return _save(out_dir / "correlation_matrix.png")


def create_eda_plots(df: pd.DataFrame, out_dir: Path) -> List[Path]:
    """Exploratory figures of the cleaned dataset."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Creating exploratory plots...")
    return [
        plot_class_balance(df, out_dir),
        plot_numeric_distributions(df, out_dir),
        plot_categorical_rates(df, out_dir),
        plot_missing_values(df, out_dir),
        plot_correlation_matrix(df, out_dir),
    ]


def plot_resample_distributions(resamples: pd.DataFrame, out_dir: Path, metric: str = 'roc_auc') -> Path:
    """Box plot of the per-resample metric for every model."""
    order = resamples.groupby('model', sort=False)[metric].mean().sort_values().index.tolist()
    data = [resamples.loc[resamples['model'] == name, metric].dropna().to_numpy() for name in order]
    plt.figure(figsize=(1.2 * len(order) + 3, 5))
    plt.boxplot(data)
    plt.xticks(range(1, len(order) + 1), order, rotation=30, ha='right')
    plt.ylabel(metric)
    plt.title(f"Resampled {metric}")
    return _save(Path(out_dir) / f"resamples_{metric}.png")


def plot_tuning_profiles(cv_results: Dict[str, pd.DataFrame], out_dir: Path, metric: str = 'roc_auc') -> Path:
    """Mean CV metric over each model's tuning grid."""
    names = list(cv_results)
    fig, axes = plt.subplots(1, len(names), figsize=(4.5 * len(names), 3.8), squeeze=False)
    for ax, name in zip(axes[0], names):
        table = cv_results[name]
        params = [c for c in table.columns
                  if not c.startswith(('mean_', 'std_')) and c not in ('n_failed', 'rank')]
        score = f'mean_{metric}'
        if len(params) == 1:
            ax.plot(table[params[0]].astype(str), table[score], marker='o')
            ax.set_xlabel(params[0])
        elif len(params) == 2:
            x_param, group_param = params
            for value, group in table.groupby(group_param, sort=True):
                ax.plot(group[x_param].astype(str), group[score], marker='o', label=f"{group_param}={value}")
            ax.set_xlabel(x_param)
            ax.legend(fontsize=7)
        else:
            ax.plot(range(len(table)), table[score], marker='o')
            ax.set_xlabel("candidate")
        ax.set_title(name)
        ax.set_ylabel(score)
    return _save(Path(out_dir) / "tuning_profiles.png")


def plot_roc_curves(curves: Dict[str, Tuple[np.ndarray, np.ndarray]], out_dir: Path) -> Path:
    """Held-out ROC curve of every model; ``curves`` maps name to (y_true, scores)."""
    plt.figure(figsize=(6, 6))
    for name, (y_true, scores) in curves.items():
        fpr, tpr, _ = roc_curve(y_true, scores)
        plt.plot(fpr, tpr, label=name)
    plt.plot([0, 1], [0, 1], linestyle='--', color='grey')
    plt.xlabel("False positive rate")
    plt.ylabel("True positive rate")
    plt.title("ROC curves (test set)")
    plt.legend(fontsize=8)
    return _save(Path(out_dir) / "roc_curves_test.png")


def plot_confusion_matrix(cm: pd.DataFrame, out_dir: Path, title: str = "Confusion matrix") -> Path:
    plt.figure(figsize=(4.5, 4))
    sns.heatmap(cm, annot=True, fmt='d', cmap='Blues', cbar=True)
    plt.xlabel(cm.columns.name or "Reference")
    plt.ylabel(cm.index.name or "Prediction")
    plt.title(title)
    return _save(Path(out_dir) / "confusion_matrix.png")
