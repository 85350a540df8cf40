"""
Loading and type coercion for the healthcare stroke dataset.

The raw CSV carries an ``id`` column, mixed-case column names, 0/1 flags for
hypertension and heart disease and ``"N/A"`` strings in the bmi column. The
functions here turn it into a frame of typed predictors plus a binary label.
"""

import logging
import time
from pathlib import Path
from typing import Tuple, Union

import numpy as np
import pandas as pd

from .schema import (
    BINARY_FLAG_COLUMNS,
    CATEGORICAL_LEVELS,
    ID_COLUMN,
    MISSING_TOKENS,
    NUMERIC_FEATURES,
    PREDICTORS,
    TARGET_COLUMN,
)

logger = logging.getLogger(__name__)


def load_raw_data(data_path: Union[str, Path], use_dask: bool = False) -> pd.DataFrame:
    """Read the raw CSV into pandas, optionally through a Dask graph."""
    p = Path(data_path)
    if not p.exists():
        raise FileNotFoundError(f"Data file not found: {p}")

    start_time = time.time()
    if use_dask:
        import dask.dataframe as dd
        from dask.diagnostics.progress import ProgressBar

        logger.info(f"Loading {p} with Dask")
        ddf = dd.read_csv(p, na_values=MISSING_TOKENS, assume_missing=True, dtype=object)
        logger.info(f"Dask DataFrame partitions: {ddf.npartitions}")
        with ProgressBar():
            df = ddf.compute()
        df = df.reset_index(drop=True)
    else:
        logger.info(f"Loading {p} with pandas")
        df = pd.read_csv(p, na_values=MISSING_TOKENS)

    if df.empty:
        raise ValueError(f"No records found in {p}")

    logger.info(f"Loaded data shape: {df.shape} in {time.time() - start_time:.2f} seconds")
    return df


def _coerce_numeric(series: pd.Series) -> pd.Series:
    cleaned = series.astype(object).where(series.notna(), np.nan)
    cleaned = cleaned.replace({token: np.nan for token in MISSING_TOKENS})
    try:
        return pd.to_numeric(cleaned, errors='raise').astype(float)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Column '{series.name}' contains non-numeric values: {e}") from e


def _coerce_labels(series: pd.Series) -> pd.Series:
    cleaned = series.astype(object).where(series.notna(), np.nan)
    return cleaned.map(lambda v: v.strip() if isinstance(v, str) else v)


def clean_stroke_data(df: pd.DataFrame,
                      drop_rare_gender: bool = True,
                      unknown_smoking_as_missing: bool = False) -> pd.DataFrame:
    """
    Clean and type-coerce a raw stroke frame.

    Args:
        df: Raw frame as read from the CSV
        drop_rare_gender: Drop rows whose gender is ``Other`` (a single record in the public dataset)
        unknown_smoking_as_missing: Treat smoking status ``Unknown`` as a missing value

    Returns:
        Frame with the ten predictors and the integer ``stroke`` label
    """
    start_time = time.time()
    logger.info("Cleaning stroke data...")

    df = df.copy()
    df.columns = [str(col).strip().lower() for col in df.columns]
    if ID_COLUMN in df.columns:
        df = df.drop(columns=[ID_COLUMN])

    missing_columns = [col for col in PREDICTORS + [TARGET_COLUMN] if col not in df.columns]
    if missing_columns:
        raise ValueError(f"Missing required columns: {missing_columns}")
    df = df[PREDICTORS + [TARGET_COLUMN]].copy()

    for col in NUMERIC_FEATURES:
        df[col] = _coerce_numeric(df[col])

    for col in BINARY_FLAG_COLUMNS:
        flags = _coerce_numeric(df[col])
        invalid = flags.dropna()[~flags.dropna().isin([0, 1])]
        if len(invalid) > 0:
            raise ValueError(f"Column '{col}' must be 0/1, found {sorted(invalid.unique())}")
        df[col] = flags.map({0: 'No', 1: 'Yes'})

    for col, levels in CATEGORICAL_LEVELS.items():
        labels = _coerce_labels(df[col])
        if col == 'smoking_status' and unknown_smoking_as_missing:
            labels = labels.replace({'Unknown': np.nan})
            levels = [level for level in levels if level != 'Unknown']
        unexpected = set(labels.dropna().unique()) - set(levels)
        if unexpected:
            raise ValueError(f"Unexpected categories in '{col}': {sorted(map(str, unexpected))}")
        df[col] = pd.Categorical(labels, categories=levels)

    target = _coerce_numeric(df[TARGET_COLUMN])
    if target.isna().any():
        raise ValueError(f"Label column '{TARGET_COLUMN}' has {int(target.isna().sum())} missing values")
    if not set(target.unique()) <= {0, 1}:
        raise ValueError(f"Label column '{TARGET_COLUMN}' must be binary 0/1, found {sorted(target.unique())}")
    df[TARGET_COLUMN] = target.astype(int)

    if drop_rare_gender:
        rare = df['gender'] == 'Other'
        if rare.any():
            logger.info(f"Dropping {int(rare.sum())} rows with gender 'Other'")
        df = df.loc[~rare].copy()
        df['gender'] = df['gender'].cat.remove_categories(['Other'])

    df = df.reset_index(drop=True)

    elapsed_time = time.time() - start_time
    logger.info(f"Cleaned data shape: {df.shape} in {elapsed_time:.2f} seconds")
    logger.info(f"Stroke prevalence: {df[TARGET_COLUMN].mean():.3f}")
    return df


def split_features_target(df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
    """Split a cleaned frame into predictors and label."""
    if TARGET_COLUMN not in df.columns:
        raise ValueError(f"Target column '{TARGET_COLUMN}' not found")
    return df.drop(columns=[TARGET_COLUMN]), df[TARGET_COLUMN]


def load_stroke_data(data_path: Union[str, Path], use_dask: bool = False, **cleaning) -> pd.DataFrame:
    """Load and clean the stroke CSV in one call."""
    return clean_stroke_data(load_raw_data(data_path, use_dask=use_dask), **cleaning)
