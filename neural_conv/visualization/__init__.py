"""
Neural Conv Visualization Module

Plots of layer values, learned kernels and learning curves.
"""

from .layer_plots import LayerVisualizer, plot_layer, plot_learning_curve

__all__ = [
    'LayerVisualizer',
    'plot_layer',
    'plot_learning_curve',
]
