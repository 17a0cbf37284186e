"""Visualization of optimization runs."""

from .run_plot import PLOT_FILENAME, RunPlotter

__all__ = ["PLOT_FILENAME", "RunPlotter"]
