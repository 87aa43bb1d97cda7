"""
Tensor Operations Utilities

Conversions between convolutional layers, NumPy arrays and PyTorch tensors.
Layer values are exposed as arrays shaped ``(channel, ...)`` followed by
the spatial axes of the layer's rank in reverse order (time, depth,
height, width), which is the layout ``torch.nn.functional.conv*d``
expects for a single sample.
"""

import torch
import numpy as np
from typing import Optional
import logging

from ..core.activation import Activation
from ..core.filters import ProductFilter
from ..core.geometry import Size
from ..core.layer import ConvLayer
from ..core.value import NeuronValue

logger = logging.getLogger(__name__)


def tensor_to_numpy(tensor: torch.Tensor) -> np.ndarray:
    """Convert PyTorch tensor to NumPy array safely

    Args:
        tensor: Input PyTorch tensor

    Returns:
        NumPy array
    """
    return tensor.detach().cpu().numpy()


def numpy_to_tensor(array: np.ndarray, device: Optional[torch.device] = None,
                    dtype: Optional[torch.dtype] = None) -> torch.Tensor:
    """Convert NumPy array to PyTorch tensor

    Args:
        array: Input NumPy array
        device: Target device
        dtype: Target data type

    Returns:
        PyTorch tensor
    """
    tensor = torch.from_numpy(np.ascontiguousarray(array))

    if dtype is not None:
        tensor = tensor.to(dtype)

    if device is not None:
        tensor = tensor.to(device)

    return tensor


def spatial_shape(size: Size, rank: int) -> tuple:
    """Array shape of a size's first ``rank`` axes, outermost axis first"""
    return tuple(reversed(size.extents[:rank]))


def layer_to_numpy(layer: ConvLayer) -> np.ndarray:
    """Layer values as an array shaped (channel, [time, depth, height,] width)"""
    values = layer.to_numpy()
    return values.T.reshape((layer.channel,) + spatial_shape(layer.size, layer.rank))


def layer_to_tensor(layer: ConvLayer, device: Optional[torch.device] = None,
                    dtype: torch.dtype = torch.float64) -> torch.Tensor:
    return numpy_to_tensor(layer_to_numpy(layer), device, dtype)


def numpy_to_layer(array: np.ndarray, layer: ConvLayer) -> ConvLayer:
    """Write an array shaped like ``layer_to_numpy`` output into a layer

    Arrays with fewer elements than the layer are zero padded; larger ones
    are truncated.
    """
    array = np.asarray(array, dtype=np.float64)
    if array.ndim == 1:
        array = array.reshape(1, -1)
    channels = array.shape[0]
    rows = array.reshape(channels, -1).T
    if channels != layer.channel:
        logger.warning(f"Array has {channels} channels, layer has {layer.channel}")
    layer.set_data([NeuronValue(row) for row in rows])
    return layer


def tensor_to_layer(tensor: torch.Tensor, layer: Optional[ConvLayer] = None,
                    activation: Optional[Activation] = None) -> ConvLayer:
    """Copy a tensor shaped (channel, ...spatial) into a layer, creating one if needed"""
    array = tensor_to_numpy(tensor).astype(np.float64)
    if layer is None:
        if array.ndim < 2:
            array = array.reshape(1, -1)
        rank = array.ndim - 1
        size = Size.of(tuple(reversed(array.shape[1:])))
        layer = ConvLayer(size, array.shape[0], activation, rank=rank)
    return numpy_to_layer(array, layer)


def kernel_to_tensor(filter: ProductFilter, dtype: torch.dtype = torch.float64) -> torch.Tensor:
    """Product filter as a convolution weight shaped (1, 1, ...kernel)

    The filter weight is folded into the kernel and only the first channel
    is kept.
    """
    kernel = filter.kernel_array()[..., 0] * float(filter.weight)
    return numpy_to_tensor(kernel, dtype=dtype).reshape((1, 1) + kernel.shape)
