"""
Repeated k-fold cross-validation harness shared by every model family.

All families are tuned on the same resample indices so their per-resample
scores are paired and can be compared directly.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Union

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.metrics import confusion_matrix, roc_auc_score
from sklearn.model_selection import ParameterGrid, RepeatedStratifiedKFold
from tqdm import tqdm

from ..utils.model_utils import positive_scores

logger = logging.getLogger(__name__)

CV_METRICS = ['roc_auc', 'sensitivity', 'specificity']


class Resample(NamedTuple):
    label: str
    train_idx: np.ndarray
    val_idx: np.ndarray


@dataclass
class ModelResult:
    """Outcome of tuning one model family."""
    name: str
    best_params: Dict[str, Any]
    best_score: float
    best_score_std: float
    cv_results: pd.DataFrame
    resample_scores: pd.DataFrame
    estimator: Any = None
    fit_time: float = 0.0
    metric: str = 'roc_auc'


def make_resamples(y: Union[pd.Series, np.ndarray],
                   n_splits: int = 10,
                   n_repeats: int = 3,
                   random_state: Optional[int] = 42) -> List[Resample]:
    """Stratified repeated k-fold indices labelled ``FoldNN.RepM``."""
    y = pd.Series(np.asarray(y))
    counts = y.value_counts()
    if len(counts) < 2:
        raise ValueError("Cross-validation requires both classes in the training data")
    if counts.min() < n_splits:
        raise ValueError(f"Minority class has {counts.min()} samples, fewer than n_splits={n_splits}")

    splitter = RepeatedStratifiedKFold(n_splits=n_splits, n_repeats=n_repeats, random_state=random_state)
    resamples = []
    for i, (train_idx, val_idx) in enumerate(splitter.split(np.zeros(len(y)), y)):
        repeat, fold = divmod(i, n_splits)
        resamples.append(Resample(f"Fold{fold + 1:02d}.Rep{repeat + 1}", train_idx, val_idx))

    logger.info(f"Created {len(resamples)} resamples ({n_splits}-fold x {n_repeats} repeats)")
    return resamples


def score_fold(estimator, X_val: pd.DataFrame, y_val: pd.Series) -> Dict[str, float]:
    """ROC AUC from ranking scores plus sensitivity/specificity from class predictions."""
    scores = positive_scores(estimator, X_val)
    y_pred = estimator.predict(X_val)
    tn, fp, fn, tp = confusion_matrix(y_val, y_pred, labels=[0, 1]).ravel()
    return {
        'roc_auc': float(roc_auc_score(y_val, scores)),
        'sensitivity': tp / (tp + fn) if (tp + fn) > 0 else np.nan,
        'specificity': tn / (tn + fp) if (tn + fp) > 0 else np.nan,
    }


class RepeatedCVTrainer:
    """Grid search over a pipeline's ``model`` step, scored on shared resamples."""

    def __init__(self,
                 metric: str = 'roc_auc',
                 error_score: Union[str, float] = np.nan,
                 show_progress: bool = True):
        """
        Initialize trainer.

        Args:
            metric: Metric maximized when selecting a candidate ('roc_auc', 'sensitivity', 'specificity')
            error_score: Score recorded when a fit fails, or 'raise' to propagate the error
            show_progress: Show a progress bar over grid candidates
        """
        if metric not in CV_METRICS:
            raise ValueError(f"Unknown metric: {metric}. Available: {CV_METRICS}")
        self.metric = metric
        self.error_score = error_score
        self.show_progress = show_progress

    def _evaluate_candidate(self, name: str, pipeline, params: Dict[str, Any],
                            X: pd.DataFrame, y: pd.Series, resamples: List[Resample]) -> pd.DataFrame:
        fold_scores = []
        for resample in resamples:
            estimator = clone(pipeline).set_params(**params)
            try:
                estimator.fit(X.iloc[resample.train_idx], y.iloc[resample.train_idx])
                scores = score_fold(estimator, X.iloc[resample.val_idx], y.iloc[resample.val_idx])
            except Exception as e:
                if self.error_score == 'raise':
                    raise
                logger.warning(f"[{name}] fit failed for {params} on {resample.label}: {e}")
                scores = {m: float(self.error_score) for m in CV_METRICS}
            fold_scores.append({'resample': resample.label, **scores})
        return pd.DataFrame(fold_scores)

    def fit(self, name: str, pipeline, param_grid: Dict[str, List[Any]],
            X: pd.DataFrame, y: pd.Series, resamples: List[Resample]) -> ModelResult:
        """Tune, select by mean CV metric, and refit the best candidate on all of X."""
        start_time = time.time()
        candidates = list(ParameterGrid(param_grid)) if param_grid else [{}]
        logger.info(f"[{name}] Evaluating {len(candidates)} candidates on {len(resamples)} resamples")

        rows = []
        fold_tables = []
        for params in tqdm(candidates, desc=f"Tuning {name}", disable=not self.show_progress):
            step_params = {f"model__{key}": value for key, value in params.items()}
            folds = self._evaluate_candidate(name, pipeline, step_params, X, y, resamples)
            fold_tables.append(folds)

            row = dict(params)
            for m in CV_METRICS:
                row[f'mean_{m}'] = float(folds[m].mean())
                row[f'std_{m}'] = float(folds[m].std())
            row['n_failed'] = int(folds[self.metric].isna().sum())
            rows.append(row)

        cv_results = pd.DataFrame(rows)
        selection = cv_results[f'mean_{self.metric}'].to_numpy(dtype=float)
        if np.all(np.isnan(selection)):
            raise RuntimeError(f"[{name}] every tuning candidate failed; no {self.metric} values to compare")

        # First maximum wins, so ties keep grid order
        best_idx = int(np.nanargmax(selection))
        best_params = candidates[best_idx]
        cv_results['rank'] = cv_results[f'mean_{self.metric}'].rank(
            ascending=False, method='first', na_option='bottom').astype(int)

        logger.info(f"[{name}] Best params: {best_params} "
                    f"({self.metric} {selection[best_idx]:.4f} +/- {cv_results.loc[best_idx, f'std_{self.metric}']:.4f})")

        estimator = clone(pipeline).set_params(**{f"model__{key}": value for key, value in best_params.items()})
        estimator.fit(X, y)

        elapsed_time = time.time() - start_time
        logger.info(f"[{name}] Tuning and refit completed in {elapsed_time:.2f} seconds")

        return ModelResult(
            name=name,
            best_params=best_params,
            best_score=float(selection[best_idx]),
            best_score_std=float(cv_results.loc[best_idx, f'std_{self.metric}']),
            cv_results=cv_results,
            resample_scores=fold_tables[best_idx],
            estimator=estimator,
            fit_time=elapsed_time,
            metric=self.metric,
        )
