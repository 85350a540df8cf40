"""
Model utilities for evaluation and cross-validated model comparison.
"""

import numpy as np
import pandas as pd
from itertools import combinations
from typing import Dict, List, Optional
from scipy import stats
from sklearn.metrics import (
    roc_auc_score, average_precision_score, f1_score,
    precision_score, recall_score, accuracy_score,
    confusion_matrix, cohen_kappa_score, classification_report
)
import logging

logger = logging.getLogger(__name__)

def positive_scores(estimator, X) -> np.ndarray:
    """Ranking score of the positive class: probability when available, else the decision function."""
    if hasattr(estimator, 'predict_proba'):
        return np.asarray(estimator.predict_proba(X))[:, 1]
    if hasattr(estimator, 'decision_function'):
        return np.asarray(estimator.decision_function(X)).ravel()
    raise ValueError(f"{type(estimator).__name__} exposes neither predict_proba nor decision_function")

class ModelEvaluator:
    """Held-out evaluation of a fitted binary classifier."""

    def __init__(self, positive_label: int = 1):
        """Initialize evaluator."""
        self.positive_label = positive_label

    def calculate_metrics(self,
                         y_true: np.ndarray,
                         y_pred: np.ndarray,
                         y_score: np.ndarray) -> Dict[str, float]:
        """
        Calculate confusion-matrix statistics and ranking metrics.

        Args:
            y_true: True binary labels
            y_pred: Predicted binary labels
            y_score: Predicted probabilities or decision scores of the positive class

        Returns:
            Dictionary of metrics
        """
        y_true = np.asarray(y_true)
        y_pred = np.asarray(y_pred)
        metrics = {}

        labels = [1 - self.positive_label, self.positive_label]
        tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=labels).ravel()
        metrics['true_negatives'] = int(tn)
        metrics['false_positives'] = int(fp)
        metrics['false_negatives'] = int(fn)
        metrics['true_positives'] = int(tp)

        metrics['accuracy'] = float(accuracy_score(y_true, y_pred))
        metrics['kappa'] = float(cohen_kappa_score(y_true, y_pred, labels=labels))
        metrics['precision'] = float(precision_score(y_true, y_pred, pos_label=self.positive_label, zero_division=0))
        metrics['recall'] = float(recall_score(y_true, y_pred, pos_label=self.positive_label, zero_division=0))
        metrics['f1_score'] = float(f1_score(y_true, y_pred, pos_label=self.positive_label, zero_division=0))

        metrics['sensitivity'] = tp / (tp + fn) if (tp + fn) > 0 else 0.0
        metrics['specificity'] = tn / (tn + fp) if (tn + fp) > 0 else 0.0
        metrics['ppv'] = tp / (tp + fp) if (tp + fp) > 0 else 0.0  # Positive Predictive Value
        metrics['npv'] = tn / (tn + fn) if (tn + fn) > 0 else 0.0  # Negative Predictive Value
        metrics['balanced_accuracy'] = (metrics['sensitivity'] + metrics['specificity']) / 2

        n = len(y_true)
        metrics['prevalence'] = (tp + fn) / n if n else 0.0
        metrics['detection_rate'] = tp / n if n else 0.0
        metrics['detection_prevalence'] = (tp + fp) / n if n else 0.0

        # Ranking metrics need both classes
        if len(np.unique(y_true)) == 2:
            metrics['roc_auc'] = float(roc_auc_score(y_true, y_score))
            metrics['pr_auc'] = float(average_precision_score(y_true, y_score, pos_label=self.positive_label))
        else:
            logger.warning("Only one class present in y_true; ROC AUC and PR AUC are undefined")
            metrics['roc_auc'] = float('nan')
            metrics['pr_auc'] = float('nan')

        return {k: float(v) if not isinstance(v, int) else v for k, v in metrics.items()}

    def confusion_matrix_frame(self, y_true: np.ndarray, y_pred: np.ndarray) -> pd.DataFrame:
        """Confusion matrix with predictions as rows and reference labels as columns."""
        labels = [1 - self.positive_label, self.positive_label]
        cm = confusion_matrix(y_true, y_pred, labels=labels)
        return pd.DataFrame(
            cm.T,
            index=pd.Index(labels, name='Prediction'),
            columns=pd.Index(labels, name='Reference'),
        )

    def generate_classification_report(self,
                                     y_true: np.ndarray,
                                     y_pred: np.ndarray) -> str:
        """Generate detailed classification report."""
        return classification_report(y_true, y_pred, zero_division=0)

class ModelComparator:
    """Compare model families on their paired resample scores."""

    def __init__(self):
        """Initialize comparator."""
        self.results = {}

    def add_result(self, result):
        """Add a tuned model result (see ``ModelResult``)."""
        self.results[result.name] = result

    def resamples_frame(self) -> pd.DataFrame:
        """Long table of per-resample scores: model, resample, metric columns."""
        if not self.results:
            return pd.DataFrame()
        frames = []
        for name, result in self.results.items():
            frame = result.resample_scores.copy()
            frame.insert(0, 'model', name)
            frames.append(frame)
        return pd.concat(frames, ignore_index=True)

    def summary(self, metric: str = 'roc_auc') -> pd.DataFrame:
        """Distribution of a metric across resamples, one row per model, best mean first."""
        resamples = self.resamples_frame()
        if resamples.empty:
            return pd.DataFrame()

        grouped = resamples.groupby('model', sort=False)[metric]
        summary_df = pd.DataFrame({
            'min': grouped.min(),
            'q1': grouped.quantile(0.25),
            'median': grouped.median(),
            'mean': grouped.mean(),
            'std': grouped.std(),
            'q3': grouped.quantile(0.75),
            'max': grouped.max(),
            'n_missing': grouped.apply(lambda s: int(s.isna().sum())),
        })
        summary_df.index.name = 'model'
        return summary_df.sort_values('mean', ascending=False)

    def get_best_model(self, metric: str = 'roc_auc') -> Optional[str]:
        """Get name of the model with the highest mean resampled metric."""
        summary_df = self.summary(metric)
        if summary_df.empty or summary_df['mean'].isna().all():
            return None
        return str(summary_df['mean'].idxmax())

    def pairwise_differences(self, metric: str = 'roc_auc') -> pd.DataFrame:
        """
        Paired t-tests on per-resample differences between every pair of models.

        P-values are Bonferroni adjusted for the number of comparisons.
        """
        resamples = self.resamples_frame()
        if resamples.empty:
            return pd.DataFrame()

        wide = resamples.pivot(index='resample', columns='model', values=metric)
        names = list(self.results)
        pairs = list(combinations(names, 2))
        rows: List[Dict] = []
        for first, second in pairs:
            paired = wide[[first, second]].dropna()
            diff = paired[first] - paired[second]
            if len(diff) > 1 and diff.std() > 0:
                t_stat, p_value = stats.ttest_rel(paired[first], paired[second])
            else:
                t_stat, p_value = np.nan, np.nan
            rows.append({
                'model_1': first,
                'model_2': second,
                'mean_difference': float(diff.mean()) if len(diff) else np.nan,
                't_statistic': float(t_stat),
                'p_value': float(p_value),
                'p_value_adjusted': float(min(1.0, p_value * len(pairs))) if not np.isnan(p_value) else np.nan,
                'n_resamples': int(len(diff)),
            })
        return pd.DataFrame(rows)
