"""N-dimensional convolutional and deconvolutional layer engine."""
__version__ = "1.0.0"

from .core import (
    Size,
    Region,
    NeuronValue,
    ConvLayer,
    LayerChain,
    Content,
    FilterFactory,
    ProductFilter,
    BiasFilter,
    LearningConfig,
    forward,
    learn_filter,
    next_region,
    prev_region,
    output_size,
)
from .exceptions import NeuralConvError, DerivativeNotImplementedError
from .utils.logging import setup_logging

# Plotting needs a working matplotlib backend; degrade when it is unusable.
try:
    from .visualization import LayerVisualizer
except Exception:
    LayerVisualizer = None
