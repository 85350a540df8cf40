"""
Feature Engineering Pipeline

This module handles categorical encoding and assembles the per-resample
preprocessing steps (encoding, center/scale, k-NN imputation) from
configuration.
"""

import pandas as pd
import numpy as np
import logging
import time
from typing import Dict, List, Any
from sklearn.base import BaseEstimator, TransformerMixin

logger = logging.getLogger(__name__)

class CategoricalEncoder(TransformerMixin, BaseEstimator):
    """Encode categorical features with levels fixed at fit time."""

    def __init__(self,
                 method: str = 'one_hot',
                 drop_first: bool = True,
                 handle_unknown: str = 'ignore'):
        """
        Initialize categorical encoder.

        Args:
            method: Encoding method ('one_hot', 'label_encoding')
            drop_first: Drop the first level of each feature so the dummies are full rank
            handle_unknown: 'ignore' encodes unseen levels as all zeros (one_hot) or NaN
                (label_encoding); 'error' raises
        """
        self.method = method
        self.drop_first = drop_first
        self.handle_unknown = handle_unknown

    def fit(self, X: pd.DataFrame, y=None):
        """Learn the levels of every categorical feature."""
        start_time = time.time()
        logger.debug(f"Fitting categorical encoder with method: {self.method}")

        if self.method not in ('one_hot', 'label_encoding'):
            raise ValueError(f"Unknown encoding method: {self.method}")

        self.categorical_features_ = X.select_dtypes(include=['object', 'category', 'string']).columns.tolist()
        self.categories_ = {}

        for feature in self.categorical_features_:
            if isinstance(X[feature].dtype, pd.CategoricalDtype):
                levels = [str(level) for level in X[feature].cat.categories]
            else:
                levels = sorted(X[feature].dropna().astype(str).unique())
            self.categories_[feature] = levels

        passthrough = [col for col in X.columns if col not in self.categorical_features_]
        self.feature_names_out_ = passthrough.copy()
        for feature in self.categorical_features_:
            if self.method == 'one_hot':
                self.feature_names_out_.extend(self._dummy_name(feature, level)
                                               for level in self._encoded_levels(feature))
            else:
                self.feature_names_out_.append(feature)

        elapsed_time = time.time() - start_time
        logger.debug(f"Fitted categorical encoder for {len(self.categorical_features_)} features in {elapsed_time:.2f} seconds")
        return self

    def _encoded_levels(self, feature: str) -> List[str]:
        levels = self.categories_[feature]
        return levels[1:] if self.drop_first and len(levels) > 1 else levels

    @staticmethod
    def _dummy_name(feature: str, level: str) -> str:
        return f"{feature}_{level.replace(' ', '_')}"

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Transform categorical features into numeric columns."""
        columns = {}
        for col in X.columns:
            if col not in self.categorical_features_:
                columns[col] = X[col]

        for feature in self.categorical_features_:
            if feature not in X.columns:
                raise ValueError(f"Categorical feature '{feature}' missing at transform time")

            values = X[feature].astype(object)
            missing = values.isnull()
            values = values.where(missing, values.astype(str))
            unknown = ~missing & ~values.isin(self.categories_[feature])
            if unknown.any():
                if self.handle_unknown == 'error':
                    raise ValueError(f"Unknown categories in '{feature}': {sorted(values[unknown].unique())}")
                logger.warning(f"{int(unknown.sum())} unseen levels in '{feature}' encoded as unknown")

            if self.method == 'one_hot':
                for level in self._encoded_levels(feature):
                    dummy = (values == level).astype(float)
                    # A missing label leaves its dummies missing for the imputer
                    columns[self._dummy_name(feature, level)] = dummy.where(~missing, np.nan)
            else:
                mapping = {level: float(code) for code, level in enumerate(self.categories_[feature])}
                columns[feature] = values.map(mapping).astype(float)

        X_transformed = pd.DataFrame(columns, index=X.index)
        return X_transformed[self.feature_names_out_]

    def get_feature_names_out(self, input_features=None):
        """Get output feature names."""
        return np.asarray(self.feature_names_out_, dtype=object)

def create_preprocessing_pipeline(config: Dict) -> List[Any]:
    """Create preprocessing steps (encode -> center/scale -> impute) from configuration."""
    from .preprocessing import MissingValueHandler, DataScaler

    pipeline_steps = []
    pre_config = config.get('preprocessing', {})

    # Categorical encoding
    encoding_config = pre_config.get('categorical_encoding', {})
    pipeline_steps.append(CategoricalEncoder(
        method=encoding_config.get('method', 'one_hot'),
        drop_first=encoding_config.get('drop_first', True),
        handle_unknown=encoding_config.get('handle_unknown', 'ignore')
    ))

    # k-NN imputation runs on the centered/scaled matrix
    scaling_config = pre_config.get('scaling', {})
    if scaling_config.get('enabled', True):
        pipeline_steps.append(DataScaler(
            method=scaling_config.get('method', 'standard')
        ))

    imputation_config = pre_config.get('imputation', {})
    pipeline_steps.append(MissingValueHandler(
        strategy=imputation_config.get('strategy', 'knn'),
        n_neighbors=imputation_config.get('n_neighbors', 5),
        add_indicator=imputation_config.get('add_indicator', False)
    ))

    logger.debug(f"Created preprocessing pipeline with {len(pipeline_steps)} steps")
    return pipeline_steps
