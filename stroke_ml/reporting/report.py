"""
Markdown report of a model comparison run.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

_TEST_COLUMNS = ['roc_auc', 'pr_auc', 'accuracy', 'kappa', 'sensitivity', 'specificity', 'ppv', 'npv']


def _table(df: pd.DataFrame, index: bool = True) -> str:
    if df.empty:
        return "_no results_"
    return "```\n" + df.to_string(index=index, float_format=lambda v: f"{v:.4f}") + "\n```"


def render_report(output_path: Path,
                  data_summary: Dict[str, Any],
                  results: Dict[str, Any],
                  comparison: Dict[str, pd.DataFrame],
                  best_model: str,
                  test_metrics: Dict[str, Dict[str, float]],
                  confusion: pd.DataFrame,
                  metric: str = 'roc_auc',
                  figures: Optional[List[Path]] = None,
                  model_labels: Optional[Dict[str, str]] = None,
                  classification_text: Optional[str] = None,
                  mars_terms: Optional[List[str]] = None) -> Path:
    """
    Write the run report as Markdown.

    Args:
        output_path: Destination ``.md`` file
        data_summary: Record counts, prevalence and missing values of the cleaned data
        results: Tuned ``ModelResult`` per model name
        comparison: ``summary`` and ``differences`` frames from ``ModelComparator``
        best_model: Name of the model selected on mean resampled metric
        test_metrics: Held-out metrics per model name
        confusion: Confusion matrix of the best model on the test set
        metric: Resampled metric used for selection
        figures: Figure paths, relative to the report's directory
        model_labels: Display name per model
        classification_text: Classification report of the best model on the test set
        mars_terms: Retained basis terms of the tuned MARS model

    Returns:
        Path of the written report
    """
    output_path = Path(output_path)
    lines = [
        "# Stroke prediction model comparison",
        "",
        f"Generated {datetime.now():%Y-%m-%d %H:%M}",
        "",
        "## Data",
        "",
        f"- Records after cleaning: {data_summary.get('n_records')}",
        f"- Predictors: {data_summary.get('n_predictors')}",
        f"- Stroke cases: {data_summary.get('n_stroke')} "
        f"(prevalence {data_summary.get('prevalence', float('nan')):.3f})",
        f"- Training / test rows: {data_summary.get('n_train')} / {data_summary.get('n_test')}",
    ]
    missing = data_summary.get('missing_values') or {}
    if missing:
        lines.append("- Missing values (imputed by k-NN): "
                     + ", ".join(f"{col} {n}" for col, n in missing.items()))

    lines += ["", "## Tuned models", ""]
    tuned = pd.DataFrame([
        {
            'model': name,
            'family': (model_labels or {}).get(name, name),
            'best_params': ", ".join(f"{k}={v}" for k, v in result.best_params.items()),
            f'cv_{metric}': result.best_score,
            'fit_seconds': result.fit_time,
        }
        for name, result in results.items()
    ])
    lines.append(_table(tuned, index=False))

    lines += ["", f"## Resampled {metric}", "", _table(comparison['summary'])]
    lines += ["", "### Paired differences (Bonferroni adjusted)", "",
              _table(comparison['differences'], index=False)]

    lines += ["", "## Test set", "", f"Selected model: **{best_model}**", ""]
    test_frame = pd.DataFrame(test_metrics).T
    lines.append(_table(test_frame[[c for c in _TEST_COLUMNS if c in test_frame.columns]]))
    lines += ["", f"Confusion matrix ({best_model}):", "", _table(confusion)]
    if classification_text:
        lines += ["", f"Classification report ({best_model}):", "", "```", classification_text.rstrip(), "```"]

    if mars_terms:
        lines += ["", "## MARS basis", "", f"Retained terms of the tuned MARS model ({len(mars_terms)}):", ""]
        lines += [f"- `{term}`" for term in mars_terms]

    if figures:
        lines += ["", "## Figures", ""]
        lines += [f"![{Path(fig).stem}]({Path(fig).as_posix()})" for fig in figures]

    output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info(f"Report written to {output_path}")
    return output_path
