"""Dataset schema, loading and synthetic generation."""

from .loader import (
    load_raw_data,
    clean_stroke_data,
    split_features_target,
    load_stroke_data,
)
from .generate_stroke_data import StrokeDataGenerator

__all__ = [
    'load_raw_data',
    'clean_stroke_data',
    'split_features_target',
    'load_stroke_data',
    'StrokeDataGenerator',
]
