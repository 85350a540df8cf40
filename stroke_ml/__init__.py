"""
Stroke ML Pipeline

Compares elastic-net logistic regression, MARS, linear and radial SVMs and a
random forest on the healthcare stroke dataset, using k-NN imputation and a
shared repeated cross-validation harness.
"""

__version__ = "1.0.0"

from .data import StrokeDataGenerator, load_stroke_data
from .pipeline import (
    CategoricalEncoder,
    MissingValueHandler,
    DataValidator,
    MARSClassifier,
    RepeatedCVTrainer,
)
from .utils import (
    ExperimentTracker,
    ModelComparator,
    ModelEvaluator
)

__all__ = [
    'StrokeDataGenerator',
    'load_stroke_data',
    'CategoricalEncoder',
    'MissingValueHandler',
    'DataValidator',
    'MARSClassifier',
    'RepeatedCVTrainer',
    'ExperimentTracker',
    'ModelComparator',
    'ModelEvaluator'
]
