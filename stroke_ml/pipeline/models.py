"""
Model families compared by the training pipeline and their default tuning grids.
"""

import logging
from typing import Any, Dict, List

from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.svm import SVC

from .mars import MARSClassifier

logger = logging.getLogger(__name__)

# scikit-learn 1.8+ derives the penalty from l1_ratio and deprecates the argument
PENALTY_FROM_L1_RATIO = LogisticRegression().get_params()['penalty'] == 'deprecated'

# Grids are expressed in scikit-learn parameter names. For the elastic net,
# C is the inverse of the penalty strength and l1_ratio the lasso/ridge mix.
DEFAULT_PARAM_GRIDS: Dict[str, Dict[str, List[Any]]] = {
    'glmnet': {
        'C': [0.001, 0.01, 0.1, 1.0, 10.0],
        'l1_ratio': [0.0, 0.25, 0.5, 0.75, 1.0],
    },
    'mars': {
        'max_degree': [1, 2],
        'n_prune': [2, 5, 8, 11, 14],
    },
    'svm_linear': {
        'C': [0.01, 0.1, 1.0],
    },
    'svm_radial': {
        'C': [0.25, 0.5, 1.0],
        'gamma': [0.01, 0.05, 0.1],
    },
    'random_forest': {
        'max_features': [2, 4, 6, 8],
    },
}

MODEL_LABELS: Dict[str, str] = {
    'glmnet': 'Elastic-net logistic regression',
    'mars': 'Multivariate adaptive regression splines',
    'svm_linear': 'SVM (linear kernel)',
    'svm_radial': 'SVM (radial kernel)',
    'random_forest': 'Random forest',
}


def available_models() -> List[str]:
    """Names of the supported model families, in comparison order."""
    return list(DEFAULT_PARAM_GRIDS)


def _model_config(name: str, config: Dict) -> Dict:
    if name not in DEFAULT_PARAM_GRIDS:
        raise ValueError(f"Unknown model: {name}. Available: {available_models()}")
    return config.get('models', {}).get(name, {}) or {}


def create_model(name: str, config: Dict):
    """Build the untuned estimator for a model family."""
    model_cfg = _model_config(name, config)
    params = dict(model_cfg.get('params', {}))
    seed = config.get('random_seed', 42)
    logger.debug(f"Creating model: {name} with {params}")

    if name == 'glmnet':
        params = {
            'solver': 'saga',
            'max_iter': 5000,
            'random_state': seed,
            **params,
        }
        if not PENALTY_FROM_L1_RATIO:
            params.setdefault('penalty', 'elasticnet')
        return LogisticRegression(**params)

    if name == 'mars':
        return MARSClassifier(**params)

    if name == 'svm_linear':
        params = {'kernel': 'linear', 'random_state': seed, **params}
        return SVC(**params)

    if name == 'svm_radial':
        params = {'kernel': 'rbf', 'random_state': seed, **params}
        return SVC(**params)

    params = {'n_estimators': 500, 'random_state': seed, 'n_jobs': 1, **params}
    return RandomForestClassifier(**params)


def get_param_grid(name: str, config: Dict) -> Dict[str, List[Any]]:
    """Tuning grid for a model family; a configured grid replaces the default."""
    model_cfg = _model_config(name, config)
    grid = model_cfg.get('grid')
    if grid is None:
        grid = DEFAULT_PARAM_GRIDS[name]
    return {key: list(values) for key, values in grid.items()}
