"""
Tests for figures and the Markdown report.
"""

import pytest
import pandas as pd
import numpy as np

from stroke_ml.pipeline.cross_validation import ModelResult
from stroke_ml.reporting.plots import create_eda_plots, plot_confusion_matrix
from stroke_ml.reporting.report import render_report
from stroke_ml.utils.model_utils import ModelEvaluator


@pytest.fixture
def report_inputs():
    """Minimal comparison outputs for two models."""
    results = {
        name: ModelResult(
            name=name,
            best_params=params,
            best_score=score,
            best_score_std=0.02,
            cv_results=pd.DataFrame(),
            resample_scores=pd.DataFrame(),
            fit_time=1.5,
        )
        for name, params, score in [('glmnet', {'C': 0.1, 'l1_ratio': 0.5}, 0.84),
                                    ('mars', {'max_degree': 1, 'n_prune': 5}, 0.82)]
    }
    summary = pd.DataFrame({'mean': [0.84, 0.82]}, index=pd.Index(['glmnet', 'mars'], name='model'))
    differences = pd.DataFrame([{'model_1': 'glmnet', 'model_2': 'mars', 'mean_difference': 0.02,
                                 'p_value': 0.04, 'p_value_adjusted': 0.04}])
    y_true = np.array([0, 0, 1, 1, 0, 1])
    y_pred = np.array([0, 1, 1, 0, 0, 1])
    evaluator = ModelEvaluator()
    return {
        'data_summary': {'n_records': 6, 'n_predictors': 10, 'n_stroke': 3, 'prevalence': 0.5,
                         'n_train': 4, 'n_test': 2, 'missing_values': {'bmi': 1}},
        'results': results,
        'comparison': {'summary': summary, 'differences': differences},
        'best_model': 'glmnet',
        'test_metrics': {'glmnet': {'roc_auc': 0.9, 'sensitivity': 0.66},
                         'mars': {'roc_auc': 0.8, 'sensitivity': 0.33}},
        'confusion': evaluator.confusion_matrix_frame(y_true, y_pred),
        'classification_text': evaluator.generate_classification_report(y_true, y_pred),
    }


class TestRenderReport:
    """Test the Markdown report."""

    def test_sections(self, report_inputs, temp_directory):
        path = render_report(temp_directory / 'report.md',
                             mars_terms=['(Intercept)', 'h(age-67)', 'h(67-age)'],
                             model_labels={'glmnet': 'Elastic-net logistic regression'},
                             **report_inputs)
        text = path.read_text()

        assert "## Test set" in text
        assert "Selected model: **glmnet**" in text
        assert "Elastic-net logistic regression" in text
        assert "Classification report (glmnet):" in text
        assert "precision" in text
        assert "## MARS basis" in text
        assert "- `h(age-67)`" in text
        assert "Retained terms of the tuned MARS model (3)" in text

    def test_optional_sections_omitted(self, report_inputs, temp_directory):
        report_inputs['classification_text'] = None
        text = render_report(temp_directory / 'report.md', **report_inputs).read_text()
        assert "Classification report" not in text
        assert "## MARS basis" not in text
        assert "## Figures" not in text


class TestPlots:
    """Test figure files are written."""

    def test_confusion_matrix_heatmap(self, temp_directory):
        cm = ModelEvaluator().confusion_matrix_frame(np.array([0, 1, 1, 0]), np.array([0, 1, 0, 0]))
        path = plot_confusion_matrix(cm, temp_directory, title="Confusion matrix (glmnet)")
        assert path.name == "confusion_matrix.png"
        assert path.stat().st_size > 0

    def test_eda_plots(self, sample_stroke_data, temp_directory):
        paths = create_eda_plots(sample_stroke_data, temp_directory / 'figures')
        assert [p.name for p in paths] == [
            'class_balance.png',
            'numeric_distributions.png',
            'categorical_stroke_rates.png',
            'missing_values.png',
            'correlation_matrix.png',
        ]
        assert all(p.exists() for p in paths)
