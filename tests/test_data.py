"""
Tests for loading, cleaning and generating stroke data.
"""

import warnings

import pytest
import pandas as pd
import numpy as np

from stroke_ml.data.generate_stroke_data import StrokeDataGenerator, main as generate_main
from stroke_ml.data.loader import (
    load_raw_data,
    clean_stroke_data,
    split_features_target,
    load_stroke_data,
)
from stroke_ml.data.schema import CATEGORICAL_LEVELS, NUMERIC_FEATURES, PREDICTORS, TARGET_COLUMN

RAW_COLUMNS = ['id', 'gender', 'age', 'hypertension', 'heart_disease', 'ever_married',
               'work_type', 'Residence_type', 'avg_glucose_level', 'bmi', 'smoking_status', 'stroke']


class TestStrokeDataGenerator:
    """Test synthetic data generation."""

    def test_raw_layout(self, raw_stroke_data):
        """Generated frame follows the public CSV layout."""
        assert list(raw_stroke_data.columns) == RAW_COLUMNS
        assert raw_stroke_data['id'].is_unique
        assert set(raw_stroke_data['hypertension'].unique()) <= {0, 1}
        assert (raw_stroke_data['bmi'] == 'N/A').any()

    def test_prevalence(self):
        """Number of positives matches the requested prevalence."""
        generator = StrokeDataGenerator(seed=1)
        df = generator.generate_dataset(num_patients=1000, prevalence=0.05)
        assert int(df['stroke'].sum()) == 50

    def test_reproducible(self):
        """Same seed gives the same data."""
        first = StrokeDataGenerator(seed=7).generate_dataset(num_patients=200)
        second = StrokeDataGenerator(seed=7).generate_dataset(num_patients=200)
        pd.testing.assert_frame_equal(first, second)

    def test_positives_weighted_by_risk(self):
        """Stroke cases are drawn towards older, hypertensive patients."""
        df = StrokeDataGenerator(seed=3).generate_dataset(num_patients=2000, prevalence=0.1)
        cases = df[df['stroke'] == 1]
        controls = df[df['stroke'] == 0]
        assert cases['age'].mean() > controls['age'].mean() + 5
        assert cases['hypertension'].mean() > controls['hypertension'].mean()

    def test_children_work_type(self, raw_stroke_data):
        """Patients under 16 are labelled as children."""
        young = raw_stroke_data[raw_stroke_data['age'] < 16]
        assert (young['work_type'] == 'children').all()

    def test_cli_writes_csv_and_summary(self, temp_directory):
        """Command line entry point writes data and summary."""
        generate_main(['--num_patients', '150', '--prevalence', '0.1',
                       '--output_dir', str(temp_directory)])
        csv_path = temp_directory / 'healthcare-dataset-stroke-data.csv'
        assert csv_path.exists()
        assert (temp_directory / 'data_summary.yaml').exists()
        assert len(pd.read_csv(csv_path)) == 150


class TestLoadRawData:
    """Test CSV loading."""

    def test_missing_file(self, temp_directory):
        with pytest.raises(FileNotFoundError):
            load_raw_data(temp_directory / 'missing.csv')

    def test_header_only_file(self, temp_directory):
        path = temp_directory / 'empty.csv'
        path.write_text(','.join(RAW_COLUMNS) + '\n')
        with pytest.raises(ValueError):
            load_raw_data(path)

    def test_na_tokens_become_missing(self, small_raw_frame, temp_directory):
        path = temp_directory / 'stroke.csv'
        small_raw_frame.to_csv(path, index=False)
        df = load_raw_data(path)
        assert df.shape == small_raw_frame.shape
        assert df['bmi'].isnull().sum() == 1

    def test_dask_matches_pandas(self, raw_stroke_data, temp_directory):
        path = temp_directory / 'stroke.csv'
        raw_stroke_data.to_csv(path, index=False)
        with_pandas = clean_stroke_data(load_raw_data(path))
        with_dask = clean_stroke_data(load_raw_data(path, use_dask=True))
        assert with_dask.shape == with_pandas.shape
        np.testing.assert_allclose(with_dask['age'], with_pandas['age'])
        assert with_dask[TARGET_COLUMN].sum() == with_pandas[TARGET_COLUMN].sum()


class TestCleanStrokeData:
    """Test type coercion and label validation."""

    def test_columns_and_types(self, small_raw_frame):
        df = clean_stroke_data(small_raw_frame)
        assert list(df.columns) == PREDICTORS + [TARGET_COLUMN]
        for col in NUMERIC_FEATURES:
            assert df[col].dtype == float
        for col in CATEGORICAL_LEVELS:
            assert isinstance(df[col].dtype, pd.CategoricalDtype)
        assert df[TARGET_COLUMN].dtype.kind == 'i'

    def test_bmi_not_available_is_missing(self, small_raw_frame):
        df = clean_stroke_data(small_raw_frame)
        assert df['bmi'].isnull().sum() == 1
        assert df['bmi'].iloc[0] == pytest.approx(36.6)

    def test_flags_become_labels(self, small_raw_frame):
        df = clean_stroke_data(small_raw_frame, drop_rare_gender=False)
        assert list(df['hypertension'].cat.categories) == ['No', 'Yes']
        assert df['hypertension'].iloc[4] == 'Yes'
        assert df['heart_disease'].iloc[0] == 'Yes'

    def test_drop_rare_gender(self, small_raw_frame):
        df = clean_stroke_data(small_raw_frame)
        assert len(df) == 5
        assert 'Other' not in df['gender'].cat.categories

    def test_keep_rare_gender(self, small_raw_frame):
        df = clean_stroke_data(small_raw_frame, drop_rare_gender=False)
        assert len(df) == 6
        assert (df['gender'] == 'Other').sum() == 1

    def test_unknown_smoking_as_missing(self, small_raw_frame):
        df = clean_stroke_data(small_raw_frame, unknown_smoking_as_missing=True)
        assert df['smoking_status'].isnull().sum() == 1
        assert 'Unknown' not in df['smoking_status'].cat.categories

    def test_unknown_smoking_kept_by_default(self, small_raw_frame):
        df = clean_stroke_data(small_raw_frame)
        assert (df['smoking_status'] == 'Unknown').sum() == 1

    def test_no_chained_assignment_warning(self, small_raw_frame):
        """Cleaning works on its own copy and leaves the input untouched."""
        original = small_raw_frame.copy()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            clean_stroke_data(small_raw_frame.iloc[:5], drop_rare_gender=False)
        assert not [w for w in caught if w.category.__name__ == 'SettingWithCopyWarning']
        pd.testing.assert_frame_equal(small_raw_frame, original)

    def test_unexpected_category(self, small_raw_frame):
        small_raw_frame.loc[0, 'work_type'] = 'Astronaut'
        with pytest.raises(ValueError, match="work_type"):
            clean_stroke_data(small_raw_frame)

    def test_non_binary_label(self, small_raw_frame):
        small_raw_frame.loc[0, 'stroke'] = 2
        with pytest.raises(ValueError, match="binary"):
            clean_stroke_data(small_raw_frame)

    def test_missing_label(self, small_raw_frame):
        small_raw_frame['stroke'] = small_raw_frame['stroke'].astype(float)
        small_raw_frame.loc[1, 'stroke'] = np.nan
        with pytest.raises(ValueError, match="missing"):
            clean_stroke_data(small_raw_frame)

    def test_missing_column(self, small_raw_frame):
        with pytest.raises(ValueError, match="avg_glucose_level"):
            clean_stroke_data(small_raw_frame.drop(columns=['avg_glucose_level']))

    def test_invalid_flag(self, small_raw_frame):
        small_raw_frame.loc[2, 'heart_disease'] = 3
        with pytest.raises(ValueError, match="heart_disease"):
            clean_stroke_data(small_raw_frame)

    def test_non_numeric_measurement(self, small_raw_frame):
        small_raw_frame['age'] = small_raw_frame['age'].astype(object)
        small_raw_frame.loc[0, 'age'] = 'sixty'
        with pytest.raises(ValueError, match="age"):
            clean_stroke_data(small_raw_frame)


class TestSplitAndLoad:
    """Test feature/label split and the one-call loader."""

    def test_split_features_target(self, sample_stroke_data):
        X, y = split_features_target(sample_stroke_data)
        assert list(X.columns) == PREDICTORS
        assert y.name == TARGET_COLUMN
        assert len(X) == len(y)

    def test_split_without_target(self, sample_stroke_data):
        with pytest.raises(ValueError):
            split_features_target(sample_stroke_data.drop(columns=[TARGET_COLUMN]))

    def test_load_stroke_data(self, raw_stroke_data, temp_directory):
        path = temp_directory / 'stroke.csv'
        raw_stroke_data.to_csv(path, index=False)
        df = load_stroke_data(path, drop_rare_gender=False)
        assert len(df) == len(raw_stroke_data)
        assert df['bmi'].isnull().sum() == (raw_stroke_data['bmi'] == 'N/A').sum()
