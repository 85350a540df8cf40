"""Utility modules for the ML pipeline."""

from .experiment_tracking import ExperimentTracker
from .model_utils import (
    ModelEvaluator,
    ModelComparator,
    positive_scores
)

__all__ = [
    'ExperimentTracker',
    'ModelEvaluator',
    'ModelComparator',
    'positive_scores'
]
