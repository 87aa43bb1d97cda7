"""
Neural Conv Visualization

Heatmaps of layer values and learned kernels, and learning curves of the
filter learner. Higher-rank layers are shown one width x height slice at a
time.
"""

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from typing import List, Optional, Sequence
import logging

from ..core.chain import LayerChain
from ..core.filters import ProductFilter
from ..core.layer import ConvLayer
from ..core.learning import LearnResult
from ..exceptions import VisualizationError

logger = logging.getLogger(__name__)

# Set style
plt.style.use('seaborn-v0_8-darkgrid')
sns.set_palette("husl")


def layer_slice(layer: ConvLayer, channel: int = 0, z: int = 0, t: int = 0) -> np.ndarray:
    """Width x height slice of one channel as a (height, width) array"""
    values = layer.to_numpy()[:, channel]
    block = values.reshape(layer.time, layer.depth, layer.height, layer.width)
    return block[t, z]


class LayerVisualizer:
    """
    Creates figures for convolutional layers

    Provides methods to visualize:
    - Layer values as heatmaps
    - Learned product kernels
    - Learning curves
    - Every layer of a chain side by side
    """

    def __init__(self, figsize: Sequence[float] = (10, 6), dpi: int = 150,
                 colormap: str = 'viridis'):
        self.figsize = tuple(figsize)
        self.dpi = dpi
        self.colormap = colormap

    def _save(self, fig: plt.Figure, save_path: Optional[str], what: str) -> None:
        if save_path:
            fig.savefig(save_path, dpi=self.dpi, bbox_inches='tight')
            logger.info(f"{what} saved to {save_path}")

    def _heatmap(self, data: np.ndarray, ax, title: str) -> None:
        sns.heatmap(data, ax=ax, cmap=self.colormap, cbar=True, square=data.shape[0] > 1)
        ax.set_title(title)
        ax.set_xlabel('x')
        ax.set_ylabel('y')

    def plot_layer(self, layer: ConvLayer, channel: int = 0, z: int = 0, t: int = 0,
                   save_path: Optional[str] = None) -> plt.Figure:
        """Heatmap of a layer slice

        Args:
            layer: Layer to draw
            channel: Channel to draw
            z: Depth index of the slice
            t: Time index of the slice
            save_path: Optional path to save the figure

        Returns:
            Matplotlib figure object
        """
        try:
            fig, ax = plt.subplots(figsize=self.figsize)
            self._heatmap(layer_slice(layer, channel, z, t), ax,
                          f"Layer {layer.id} ({layer.size}), z={z}, t={t}")
            plt.tight_layout()
            self._save(fig, save_path, "Layer plot")
            return fig

        except Exception as e:
            raise VisualizationError(f"Failed to plot layer {layer.id}: {e}", plot_type="layer")

    def plot_kernel(self, filter: ProductFilter, channel: int = 0,
                    save_path: Optional[str] = None) -> plt.Figure:
        """Heatmap of the first width x height slice of a product kernel"""
        try:
            kernel = filter.kernel_array()[..., channel] * float(filter.weight)
            kernel = kernel.reshape((-1,) + kernel.shape[-2:]) if kernel.ndim >= 2 else kernel.reshape(1, 1, -1)
            fig, ax = plt.subplots(figsize=self.figsize)
            self._heatmap(kernel[0], ax, f"Kernel {filter.kernel_size[:filter.rank]}")
            plt.tight_layout()
            self._save(fig, save_path, "Kernel plot")
            return fig

        except Exception as e:
            raise VisualizationError(f"Failed to plot kernel: {e}", plot_type="kernel")

    def plot_learning_curve(self, result: LearnResult, log_scale: bool = True,
                            save_path: Optional[str] = None) -> plt.Figure:
        """Mean absolute error of every learning sweep"""
        try:
            errors = np.asarray(result.errors, dtype=np.float64)
            fig, ax = plt.subplots(figsize=self.figsize)
            ax.plot(np.arange(1, len(errors) + 1), errors, linewidth=2)
            if log_scale and len(errors) and np.all(errors > 0):
                ax.set_yscale('log')
            ax.set_xlabel('Iteration')
            ax.set_ylabel('Mean absolute error')
            ax.set_title('Filter learning')
            plt.tight_layout()
            self._save(fig, save_path, "Learning curve")
            return fig

        except Exception as e:
            raise VisualizationError(f"Failed to plot learning curve: {e}", plot_type="learning_curve")

    def plot_chain(self, chain: LayerChain, channel: int = 0,
                   save_path: Optional[str] = None) -> plt.Figure:
        """First slice of every layer of a chain, head to tail"""
        layers: List[ConvLayer] = list(chain)
        if not layers:
            raise VisualizationError("Chain has no layers", plot_type="chain")

        try:
            fig, axes = plt.subplots(1, len(layers), figsize=(4 * len(layers), 4), squeeze=False)
            for ax, layer in zip(axes[0], layers):
                self._heatmap(layer_slice(layer, channel), ax, f"Layer {layer.id} ({layer.size})")
            plt.tight_layout()
            self._save(fig, save_path, "Chain plot")
            return fig

        except Exception as e:
            raise VisualizationError(f"Failed to plot chain: {e}", plot_type="chain")


def plot_layer(layer: ConvLayer, save_path: Optional[str] = None, **kwargs) -> plt.Figure:
    return LayerVisualizer().plot_layer(layer, save_path=save_path, **kwargs)


def plot_learning_curve(result: LearnResult, save_path: Optional[str] = None, **kwargs) -> plt.Figure:
    return LayerVisualizer().plot_learning_curve(result, save_path=save_path, **kwargs)
