"""Test configuration and fixtures."""

import pytest
import pandas as pd
import numpy as np
import tempfile
from pathlib import Path

from stroke_ml.data.generate_stroke_data import StrokeDataGenerator
from stroke_ml.data.loader import clean_stroke_data, split_features_target


@pytest.fixture
def raw_stroke_data():
    """Synthetic records in the raw CSV layout."""
    generator = StrokeDataGenerator(seed=42, bmi_missing_rate=0.05)
    return generator.generate_dataset(num_patients=400, prevalence=0.1)


@pytest.fixture
def sample_stroke_data(raw_stroke_data):
    """Cleaned stroke frame with typed predictors."""
    return clean_stroke_data(raw_stroke_data)


@pytest.fixture
def stroke_features(sample_stroke_data):
    """Predictors and label of the cleaned frame."""
    return split_features_target(sample_stroke_data)


@pytest.fixture
def small_raw_frame():
    """A handful of raw rows covering the awkward values in the public CSV."""
    return pd.DataFrame({
        'id': [9046, 51676, 31112, 60182, 1665, 56669],
        'gender': ['Male', 'Female', 'Male', 'Female', 'Other', 'Male'],
        'age': [67.0, 61.0, 80.0, 49.0, 79.0, 81.0],
        'hypertension': [0, 0, 0, 0, 1, 0],
        'heart_disease': [1, 0, 1, 0, 0, 0],
        'ever_married': ['Yes', 'Yes', 'Yes', 'Yes', 'Yes', 'Yes'],
        'work_type': ['Private', 'Self-employed', 'Private', 'Private', 'Self-employed', 'Private'],
        'Residence_type': ['Urban', 'Rural', 'Rural', 'Urban', 'Rural', 'Urban'],
        'avg_glucose_level': [228.69, 202.21, 105.92, 171.23, 174.12, 186.21],
        'bmi': ['36.6', 'N/A', '32.5', '34.4', '24', '29'],
        'smoking_status': ['formerly smoked', 'never smoked', 'never smoked', 'smokes',
                           'never smoked', 'Unknown'],
        'stroke': [1, 1, 1, 0, 0, 0],
    })


@pytest.fixture
def temp_directory():
    """Create temporary directory for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_config():
    """Small configuration for fast test runs."""
    return {
        'random_seed': 42,
        'data': {
            'use_dask': False,
            'drop_rare_gender': True,
            'unknown_smoking_as_missing': False,
            'test_size': 0.25
        },
        'preprocessing': {
            'categorical_encoding': {'method': 'one_hot', 'drop_first': True},
            'scaling': {'enabled': True, 'method': 'standard'},
            'imputation': {'strategy': 'knn', 'n_neighbors': 5}
        },
        'cross_validation': {
            'n_splits': 3,
            'n_repeats': 1,
            'metric': 'roc_auc',
            'show_progress': False
        },
        'training': {
            'models': ['glmnet', 'mars', 'random_forest']
        },
        'models': {
            'glmnet': {
                'params': {'max_iter': 2000},
                'grid': {'C': [0.1, 1.0], 'l1_ratio': [0.5]}
            },
            'mars': {
                'grid': {'max_degree': [1], 'n_prune': [5]}
            },
            'svm_linear': {
                'grid': {'C': [0.1]}
            },
            'svm_radial': {
                'grid': {'C': [0.5], 'gamma': [0.05]}
            },
            'random_forest': {
                'params': {'n_estimators': 25},
                'grid': {'max_features': [2, 4]}
            }
        },
        'imbalance': {'method': 'none'},
        'mlflow': {'enabled': False}
    }
