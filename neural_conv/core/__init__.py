"""
Neural Conv Core Module

Rank-parameterised convolutional layers, filters, the forward propagation
engine, region mapping, filter learning, layer chains and content algebra.
"""

from .geometry import Size, Region, IdSource
from .value import NeuronValue
from .activation import Activation, Identity, ReLU, Logistic, Tanh, Softmax, default_activation
from .filters import (
    Filter, FilterKind, ProductFilter, ZoomOutFilter, MaxPoolFilter, FunctionFilter,
    NegativeFilter, ZoomInFilter, DeconvConvFilter, BiasFilter, FilterFactory, output_size
)
from .region import next_region, prev_region, next_region_at, prev_region_at
from .forward import ForwardResult, forward
from .learning import (
    LearningConfig, LearnResult, ValueRaster, learn_filter, learning_rate_at, d_kernel, d_value
)
from .layer import ConvNeuron, ConvLayer
from .chain import LayerChain
from .content import Content

__all__ = [
    'Size',
    'Region',
    'IdSource',
    'NeuronValue',
    'Activation',
    'Identity',
    'ReLU',
    'Logistic',
    'Tanh',
    'Softmax',
    'default_activation',
    'Filter',
    'FilterKind',
    'ProductFilter',
    'ZoomOutFilter',
    'MaxPoolFilter',
    'FunctionFilter',
    'NegativeFilter',
    'ZoomInFilter',
    'DeconvConvFilter',
    'BiasFilter',
    'FilterFactory',
    'output_size',
    'next_region',
    'prev_region',
    'next_region_at',
    'prev_region_at',
    'ForwardResult',
    'forward',
    'LearningConfig',
    'LearnResult',
    'ValueRaster',
    'learn_filter',
    'learning_rate_at',
    'd_kernel',
    'd_value',
    'ConvNeuron',
    'ConvLayer',
    'LayerChain',
    'Content',
]
