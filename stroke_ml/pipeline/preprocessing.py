"""
Data preprocessing utilities for imputing missing values, scaling, and validation.
"""

import pandas as pd
import numpy as np
import logging
import time
from typing import Dict, List
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.preprocessing import StandardScaler, MinMaxScaler
from sklearn.impute import KNNImputer, SimpleImputer

from ..data.schema import CATEGORICAL_LEVELS, TARGET_COLUMN

logger = logging.getLogger(__name__)

class MissingValueHandler(TransformerMixin, BaseEstimator):
    """Impute missing numeric values with k-nearest neighbours or the median."""

    def __init__(self,
                 strategy: str = 'knn',
                 n_neighbors: int = 5,
                 add_indicator: bool = False):
        """
        Initialize missing value handler.

        Args:
            strategy: Imputation strategy ('knn', 'median')
            n_neighbors: Number of neighbours used by k-NN imputation
            add_indicator: Whether to add binary indicator for missing values
        """
        self.strategy = strategy
        self.n_neighbors = n_neighbors
        self.add_indicator = add_indicator

    def fit(self, X: pd.DataFrame, y=None):
        """Fit the imputer on the numeric columns."""
        start_time = time.time()
        logger.debug(f"Fitting missing value handler with strategy: {self.strategy}")

        self.numeric_features_ = X.select_dtypes(include=[np.number]).columns.tolist()

        if self.strategy == 'knn':
            self.imputer_ = KNNImputer(n_neighbors=self.n_neighbors, keep_empty_features=True)
        elif self.strategy == 'median':
            self.imputer_ = SimpleImputer(strategy='median', keep_empty_features=True)
        else:
            raise ValueError(f"Unknown imputation strategy: {self.strategy}")

        if self.numeric_features_:
            self.imputer_.fit(X[self.numeric_features_])

        # Identify features with missing values for indicators
        self.missing_indicators_ = []
        if self.add_indicator:
            self.missing_indicators_ = [col for col in self.numeric_features_ if X[col].isnull().any()]

        elapsed_time = time.time() - start_time
        logger.debug(f"Fitted missing value handler for {len(self.numeric_features_)} numeric "
                   f"features in {elapsed_time:.2f} seconds")
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Transform by imputing missing values."""
        start_time = time.time()

        X_transformed = X.copy()

        # Add missing indicators before imputation
        for col in self.missing_indicators_:
            if col in X_transformed.columns:
                X_transformed[f'{col}_was_missing'] = X_transformed[col].isnull().astype(int)

        if self.numeric_features_:
            n_missing = int(X_transformed[self.numeric_features_].isnull().sum().sum())
            X_transformed[self.numeric_features_] = self.imputer_.transform(X_transformed[self.numeric_features_])
            logger.debug(f"Imputed {n_missing} values")

        elapsed_time = time.time() - start_time
        logger.debug(f"Missing value transformation completed in {elapsed_time:.2f} seconds")
        return X_transformed

class DataValidator:
    """Validate data quality and consistency."""

    def __init__(self):
        self.validation_rules = {}

    def add_rule(self, feature: str, rule_type: str, **kwargs):
        """Add validation rule for a feature."""
        if feature not in self.validation_rules:
            self.validation_rules[feature] = []

        self.validation_rules[feature].append({
            'type': rule_type,
            'params': kwargs
        })

    def validate(self, df: pd.DataFrame) -> Dict[str, List[str]]:
        """Validate dataframe against rules."""
        violations = {}

        for feature, rules in self.validation_rules.items():
            if feature not in df.columns:
                continue

            feature_violations = []

            for rule in rules:
                if rule['type'] == 'range':
                    min_val = rule['params'].get('min')
                    max_val = rule['params'].get('max')

                    if min_val is not None:
                        violation_count = (df[feature] < min_val).sum()
                        if violation_count > 0:
                            feature_violations.append(f"{violation_count} values below minimum {min_val}")

                    if max_val is not None:
                        violation_count = (df[feature] > max_val).sum()
                        if violation_count > 0:
                            feature_violations.append(f"{violation_count} values above maximum {max_val}")

                elif rule['type'] == 'categorical':
                    allowed_values = rule['params'].get('allowed_values', [])
                    present = df[feature].dropna()
                    violation_count = (~present.isin(allowed_values)).sum()

                    if violation_count > 0:
                        feature_violations.append(f"{violation_count} invalid categorical values")

                elif rule['type'] == 'missing_rate':
                    max_missing_rate = rule['params'].get('max_rate', 0.1)
                    missing_rate = df[feature].isnull().mean()

                    if missing_rate > max_missing_rate:
                        feature_violations.append(f"Missing rate {missing_rate:.2%} exceeds {max_missing_rate:.2%}")

            if feature_violations:
                violations[feature] = feature_violations

        return violations

    def setup_stroke_rules(self):
        """Setup validation rules for the stroke dataset."""
        self.add_rule('age', 'range', min=0, max=120)
        self.add_rule('avg_glucose_level', 'range', min=40, max=400)
        self.add_rule('bmi', 'range', min=10, max=100)
        self.add_rule('bmi', 'missing_rate', max_rate=0.1)

        for feature, levels in CATEGORICAL_LEVELS.items():
            self.add_rule(feature, 'categorical', allowed_values=levels)

        self.add_rule(TARGET_COLUMN, 'categorical', allowed_values=[0, 1])
        for feature in ['age', 'gender', TARGET_COLUMN]:
            self.add_rule(feature, 'missing_rate', max_rate=0.0)

class DataScaler(TransformerMixin, BaseEstimator):
    """Center and scale numeric features, leaving missing values in place."""

    def __init__(self, method: str = 'standard'):
        """
        Initialize scaler.

        Args:
            method: Scaling method ('standard', 'minmax')
        """
        self.method = method

    def fit(self, X: pd.DataFrame, y=None):
        """Fit the scaler."""
        start_time = time.time()
        logger.debug(f"Fitting data scaler with method: {self.method}")

        self.numeric_features_ = X.select_dtypes(include=[np.number]).columns.tolist()

        if self.method == 'standard':
            self.scaler_ = StandardScaler()
        elif self.method == 'minmax':
            self.scaler_ = MinMaxScaler()
        else:
            raise ValueError(f"Unknown scaling method: {self.method}")

        # sklearn scalers ignore NaN when fitting and keep it when transforming
        if self.numeric_features_:
            self.scaler_.fit(X[self.numeric_features_])

        elapsed_time = time.time() - start_time
        logger.debug(f"Fitted scaler for {len(self.numeric_features_)} numeric features in {elapsed_time:.2f} seconds")
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Transform by scaling numeric features."""
        X_transformed = X.copy()

        if self.numeric_features_:
            available_numeric = [col for col in self.numeric_features_ if col in X_transformed.columns]
            if len(available_numeric) != len(self.numeric_features_):
                raise ValueError(f"Missing numeric columns at transform time: "
                                 f"{sorted(set(self.numeric_features_) - set(available_numeric))}")
            X_transformed[available_numeric] = self.scaler_.transform(X_transformed[available_numeric])

        return X_transformed
