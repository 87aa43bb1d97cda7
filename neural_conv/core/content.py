"""
Neural Conv Content

Content is an algebraic, value-semantics view over the values of a layer
(a feature map). Every operation returns a new Content; the operand of a
binary operation is first resized to this content's size.
"""

from typing import Any, List, Optional, Sequence
import logging

from .activation import Activation, default_activation
from .filters import Filter, output_size
from .forward import forward
from .geometry import MAX_RANK, Size, iter_coords
from .layer import ConvLayer, adjust_values
from .value import NeuronValue

logger = logging.getLogger(__name__)


class Content:
    """Feature map of a given size with per-channel values and a bias"""

    def __init__(self, channel: int, size: Size, data: Optional[Sequence[NeuronValue]] = None,
                 activation: Optional[Activation] = None, bias: Optional[NeuronValue] = None):
        self.channel = channel if channel >= 1 else 1
        self.size = size if isinstance(size, Size) else Size.of(size)
        self.activation = activation if activation is not None else default_activation(self.channel)
        zero = NeuronValue.zeros(self.channel)
        self.data: List[NeuronValue] = adjust_values(list(data) if data is not None else [],
                                                     self.size.length(), zero)
        self.bias = bias if bias is not None else zero

    @classmethod
    def from_layer(cls, layer: ConvLayer) -> 'Content':
        return cls(layer.channel, layer.size, layer.get_data(), layer.activation, layer.bias)

    @classmethod
    def of(cls, values: Sequence[Any], size: Size, channel: int = 1) -> 'Content':
        zero = NeuronValue.zeros(channel)
        return cls(channel, size, [zero.value_of(v) for v in values])

    def to_layer(self, rank: Optional[int] = None) -> ConvLayer:
        layer = ConvLayer(self.size, self.channel, self.activation,
                          rank=rank if rank is not None else self.size.dim())
        layer.set_data(self.data)
        layer.set_bias(self.bias)
        return layer

    def _new(self, size: Size, data: List[NeuronValue]) -> 'Content':
        return Content(self.channel, size, data, self.activation, self.bias)

    def zero(self) -> NeuronValue:
        return NeuronValue.zeros(self.channel)

    def length(self) -> int:
        return len(self.data)

    def __len__(self):
        return len(self.data)

    def get(self, x: int, y: int = 0, z: int = 0, t: int = 0) -> NeuronValue:
        return self.data[self.size.index((x, y, z, t))]

    # Algebra

    def _operand(self, other: 'Content') -> List[NeuronValue]:
        if other.size != self.size:
            other = other.resize(self.size)
        return other.data

    def add(self, other: 'Content') -> Optional['Content']:
        if other is None:
            return None
        return self._new(self.size, [a.add(b) for a, b in zip(self.data, self._operand(other))])

    def subtract(self, other: 'Content') -> Optional['Content']:
        if other is None:
            return None
        return self._new(self.size, [a.subtract(b) for a, b in zip(self.data, self._operand(other))])

    def multiply(self, other: 'Content') -> Optional['Content']:
        if other is None:
            return None
        return self._new(self.size, [a.multiply(b) for a, b in zip(self.data, self._operand(other))])

    def multiply_scalar(self, value: float) -> 'Content':
        return self._new(self.size, [v.multiply(value) for v in self.data])

    def divide_scalar(self, value: float) -> Optional['Content']:
        if value == 0:
            return None
        return self._new(self.size, [v.divide(value) for v in self.data])

    def mean(self) -> NeuronValue:
        total = self.zero()
        for v in self.data:
            total = total.add(v)
        return total.divide(len(self.data)) if self.data else total

    def derivative(self, activation: Optional[Activation] = None) -> 'Content':
        """Activation derivative at every value"""
        activation = activation if activation is not None else self.activation
        return self._new(self.size, [v.derivative(activation) for v in self.data])

    # Shape

    def dim(self) -> int:
        return self.size.dim()

    def resize(self, size: Size) -> 'Content':
        """Coordinate-wise copy into a new size, zero filled where it grew"""
        size = size if isinstance(size, Size) else Size.of(size)
        if size == self.size:
            return self._new(size, list(self.data))
        zero = self.zero()
        data = [self.data[self.size.index(c)] if self.size.contains(c) else zero
                for c in iter_coords(size.extents)]
        return self._new(size, data)

    def increase_dim(self, larger_dim: int) -> 'Content':
        """Extend to a higher dimension, each new axis of extent 2 with a zero slice"""
        content = self
        for axis in range(self.dim(), min(larger_dim, MAX_RANK)):
            size = content.size.with_extent(axis, 2)
            content = content._new(size, content.data + [self.zero()] * len(content.data))
        return content

    def decrease_dim(self, smaller_dim: int) -> 'Content':
        """Keep the first slice along every axis above ``smaller_dim``"""
        content = self
        for axis in range(self.dim() - 1, max(smaller_dim, 1) - 1, -1):
            extent = content.size.extent(axis)
            size = content.size.with_extent(axis, 1)
            content = content._new(size, content.data[:len(content.data) // extent])
        return content

    def split_dim(self, smaller_dim: int) -> List['Content']:
        """Split into slices along every axis above ``smaller_dim``"""
        if self.dim() <= max(smaller_dim, 1):
            return [self]
        axis = self.dim() - 1
        extent = self.size.extent(axis)
        size = self.size.with_extent(axis, 1)
        step = len(self.data) // extent
        contents = []
        for k in range(extent):
            contents.extend(self._new(size, self.data[k * step:(k + 1) * step]).split_dim(smaller_dim))
        return contents

    @staticmethod
    def aggregate(contents: Sequence['Content']) -> Optional['Content']:
        """Concatenate contents along the next free axis, or the last axis at rank 4

        Every content is first brought to the dimension and size of the
        largest one; contents of lower dimension are raised with
        ``increase_dim``.
        """
        contents = [c for c in contents if c is not None]
        if not contents:
            return None
        if len(contents) == 1:
            return contents[0]

        largest = contents[0]
        for c in contents[1:]:
            if c.dim() > largest.dim() or (c.dim() == largest.dim() and len(c) > len(largest)):
                largest = c
        max_dim = largest.dim()

        data = []
        stacked = 0
        mixed = False
        for c in contents:
            if c.dim() < max_dim:
                c = c.increase_dim(max_dim)
                mixed = True
            c = c.resize(largest.size)
            stacked += c.size.extent(max_dim - 1)
            data.extend(c.data)

        if mixed or max_dim >= MAX_RANK:
            size = largest.size.with_extent(max_dim - 1, stacked)
        else:
            size = largest.size.with_extent(max_dim, len(contents))
        logger.debug(f"Aggregated {len(contents)} contents into {size}")
        return largest._new(size, data)

    # Propagation

    def forward(self, filter: Filter, size: Optional[Size] = None,
                activation: Optional[Activation] = None) -> Optional['Content']:
        """Content produced by forwarding this content through a filter"""
        if filter is None:
            return None
        source = self.to_layer()
        size = size if size is not None else output_size(self.size, filter)
        destination = ConvLayer(size, self.channel, activation if activation is not None else self.activation,
                                rank=max(source.rank, size.dim()))
        result = forward(source, destination, filter)
        if result is None:
            return None
        return Content(self.channel, size, destination.get_data(), destination.activation)

    def __repr__(self):
        return f"Content(size={self.size}, channel={self.channel})"
