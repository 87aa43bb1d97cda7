"""
Neural Conv Utilities Module

Logging setup and conversions between layers, NumPy arrays and PyTorch
tensors.
"""

from .logging import setup_logging
from .tensor_ops import (
    tensor_to_numpy, numpy_to_tensor, layer_to_numpy, layer_to_tensor,
    numpy_to_layer, tensor_to_layer, kernel_to_tensor
)

__all__ = [
    'setup_logging',
    # Tensor operations
    'tensor_to_numpy',
    'numpy_to_tensor',
    'layer_to_numpy',
    'layer_to_tensor',
    'numpy_to_layer',
    'tensor_to_layer',
    'kernel_to_tensor',
]
