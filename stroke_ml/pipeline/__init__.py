"""Pipeline utilities and shared components."""

from .feature_engineering import (
    CategoricalEncoder,
    create_preprocessing_pipeline
)

from .preprocessing import (
    MissingValueHandler,
    DataValidator,
    DataScaler,
)

from .mars import MARSClassifier
from .models import available_models, create_model, get_param_grid
from .cross_validation import ModelResult, RepeatedCVTrainer, make_resamples

__all__ = [
    'CategoricalEncoder',
    'create_preprocessing_pipeline',
    'MissingValueHandler',
    'DataValidator',
    'DataScaler',
    'MARSClassifier',
    'available_models',
    'create_model',
    'get_param_grid',
    'ModelResult',
    'RepeatedCVTrainer',
    'make_resamples',
]
