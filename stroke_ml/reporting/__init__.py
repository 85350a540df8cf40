"""Figures and Markdown report."""

from .plots import create_eda_plots
from .report import render_report

__all__ = ['create_eda_plots', 'render_report']
