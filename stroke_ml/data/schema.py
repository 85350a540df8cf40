"""
Column schema of the healthcare stroke dataset.
"""

from typing import Dict, List

ID_COLUMN = 'id'
TARGET_COLUMN = 'stroke'

NUMERIC_FEATURES: List[str] = ['age', 'avg_glucose_level', 'bmi']

CATEGORICAL_LEVELS: Dict[str, List[str]] = {
    'gender': ['Female', 'Male', 'Other'],
    'hypertension': ['No', 'Yes'],
    'heart_disease': ['No', 'Yes'],
    'ever_married': ['No', 'Yes'],
    'work_type': ['children', 'Govt_job', 'Never_worked', 'Private', 'Self-employed'],
    'residence_type': ['Rural', 'Urban'],
    'smoking_status': ['formerly smoked', 'never smoked', 'smokes', 'Unknown'],
}

CATEGORICAL_FEATURES: List[str] = list(CATEGORICAL_LEVELS)

# Column order of the cleaned frame
PREDICTORS: List[str] = [
    'gender', 'age', 'hypertension', 'heart_disease', 'ever_married',
    'work_type', 'residence_type', 'avg_glucose_level', 'bmi', 'smoking_status',
]

# 0/1 flags in the raw file that are labels, not measurements
BINARY_FLAG_COLUMNS: List[str] = ['hypertension', 'heart_disease']

MISSING_TOKENS: List[str] = ['N/A', 'NA', '']
