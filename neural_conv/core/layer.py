"""
Neural Conv Layers

ConvLayer is a single rank-parameterised convolutional layer covering the
width, width x height, width x height x depth and width x height x depth x
time cases. Neurons are stored in one flat list following the index law
``x + w * (y + h * (z + d * t))``.

Neighbour links are integer indices into a LayerChain, so a layer never
holds a reference to another layer.
"""

from typing import Any, Iterable, List, Optional, Sequence, Union
import logging

import numpy as np

from .activation import Activation, default_activation
from .filters import BiasFilter, Filter
from .geometry import IdSource, Region, Size
from .value import NeuronValue
from . import forward as forward_engine
from . import learning
from ..exceptions import validate_channel, validate_rank

logger = logging.getLogger(__name__)


class ConvNeuron:
    """Neuron holding its output value and the pre-activation input of the last pass"""

    __slots__ = ('value', 'input')

    def __init__(self, value: Optional[NeuronValue] = None, input: Optional[NeuronValue] = None):
        self.value = value
        self.input = input

    def __repr__(self):
        return f"ConvNeuron(value={self.value!r}, input={self.input!r})"


class ConvLayer:
    """Convolutional layer of rank 1 to 4

    Args:
        size: Layer extents, a Size or a sequence (width, height, depth, time)
        channel: Number of channels of every neuron value (coerced to >= 1)
        activation: Activation reference; None selects the channel default
        filter: Filter applied when forwarding to the next layer
        rank: Explicit rank; defaults to the highest axis with extent > 1
        id_source: Shared identifier source for diagnostics
        pad_zero: Treat positions beyond the edge as zero instead of clamping
    """

    def __init__(self, size: Union[Size, Sequence[int]] = None, channel: int = 1,
                 activation: Optional[Activation] = None, filter: Optional[Filter] = None,
                 rank: Optional[int] = None, id_source: Optional[IdSource] = None,
                 pad_zero: bool = False):
        validate_channel(channel)
        if size is None:
            size = Size()
        elif not isinstance(size, Size):
            size = Size.of(size)
        if rank is None:
            rank = size.dim()
        validate_rank(rank)
        if size.dim() > rank:
            logger.warning(f"Size {size} exceeds rank {rank}; extents above the rank are dropped")
            size = Size.of(size.extents[:rank])

        self.rank = rank
        self.size = size
        self.channel = channel if channel >= 1 else 1
        self.activation = activation if activation is not None else default_activation(self.channel)
        self.filter = filter
        self.pad_zero = pad_zero
        self.id = id_source.next_id() if id_source is not None else -1
        self.prev_index: Optional[int] = None
        self.next_index: Optional[int] = None

        self._bias = self.new_value()
        zero = self.new_value()
        self._neurons = [ConvNeuron(zero, None) for _ in range(size.length())]

    @classmethod
    def create1d(cls, width: int, **kwargs) -> 'ConvLayer':
        return cls(Size(width), rank=1, **kwargs)

    @classmethod
    def create2d(cls, width: int, height: int, **kwargs) -> 'ConvLayer':
        return cls(Size(width, height), rank=2, **kwargs)

    @classmethod
    def create3d(cls, width: int, height: int, depth: int, **kwargs) -> 'ConvLayer':
        return cls(Size(width, height, depth), rank=3, **kwargs)

    @classmethod
    def create4d(cls, width: int, height: int, depth: int, time: int, **kwargs) -> 'ConvLayer':
        return cls(Size(width, height, depth, time), rank=4, **kwargs)

    # Shape

    @property
    def width(self) -> int:
        return self.size.width

    @property
    def height(self) -> int:
        return self.size.height

    @property
    def depth(self) -> int:
        return self.size.depth

    @property
    def time(self) -> int:
        return self.size.time

    def length(self) -> int:
        return len(self._neurons)

    def __len__(self):
        return len(self._neurons)

    def new_value(self) -> NeuronValue:
        return NeuronValue.zeros(self.channel)

    # Neurons

    def neurons(self) -> List[ConvNeuron]:
        return self._neurons

    def index_of(self, x: int, y: int = 0, z: int = 0, t: int = 0) -> Optional[int]:
        """Flat index of a coordinate, or None outside the layer"""
        coord = (x, y, z, t)
        return self.size.index(coord) if self.size.contains(coord) else None

    def get(self, x: int, y: int = 0, z: int = 0, t: int = 0) -> Optional[ConvNeuron]:
        index = self.index_of(x, y, z, t)
        return self._neurons[index] if index is not None else None

    def get_index(self, index: int) -> ConvNeuron:
        return self._neurons[index]

    def value_at(self, coord: Sequence[int]) -> Optional[NeuronValue]:
        if not self.size.contains(coord):
            return None
        return self._neurons[self.size.index(coord)].value

    def input_at(self, coord: Sequence[int]) -> Optional[NeuronValue]:
        if not self.size.contains(coord):
            return None
        return self._neurons[self.size.index(coord)].input

    def set(self, value: Any, x: int, y: int = 0, z: int = 0, t: int = 0) -> Optional[NeuronValue]:
        """Store a value at a coordinate and return the previous one

        Nothing is stored and None is returned outside the layer.
        """
        index = self.index_of(x, y, z, t)
        if index is None:
            return None
        return self.set_index(index, value)

    def set_index(self, index: int, value: Any) -> Optional[NeuronValue]:
        neuron = self._neurons[index]
        previous = neuron.value
        neuron.value = self._coerce(value)
        return previous

    def _coerce(self, value: Any) -> NeuronValue:
        if isinstance(value, NeuronValue):
            return value
        if value is None:
            return self.new_value()
        return self.new_value().value_of(value)

    # Bulk data

    def get_data(self, region: Optional[Region] = None) -> Optional[List[NeuronValue]]:
        """Neuron values of the layer or of a region clamped to the layer"""
        if region is None:
            return [n.value for n in self._neurons]

        clamped = region.clamp(self.size)
        if clamped is None:
            return None
        return [self._neurons[self.size.index(c)].value for c in clamped.coords()]

    def set_data(self, data: Iterable[Any], region: Optional[Region] = None) -> Optional[List[NeuronValue]]:
        """Write values into the layer or into a region clamped to the layer

        The data are padded with zero or truncated to the target length and
        the written values are returned.
        """
        if data is None:
            return None

        if region is None:
            indices = range(len(self._neurons))
        else:
            clamped = region.clamp(self.size)
            if clamped is None:
                return None
            indices = [self.size.index(c) for c in clamped.coords()]

        values = adjust_values([self._coerce(v) for v in data], len(indices), self.new_value())
        for index, value in zip(indices, values):
            self._neurons[index].value = value
        return values

    def set_array(self, array: np.ndarray) -> List[NeuronValue]:
        """Write an array shaped (length,) or (length, channel) in index order"""
        array = np.asarray(array, dtype=np.float64)
        rows = array.reshape(array.shape[0], -1) if array.ndim > 1 else array.reshape(-1, 1)
        return self.set_data(NeuronValue(row) for row in rows)

    def resize(self, size: Union[Size, Sequence[int]]) -> 'ConvLayer':
        """Copy of this layer with a new size, zero filled where the size grew"""
        size = size if isinstance(size, Size) else Size.of(size)
        layer = ConvLayer(size, self.channel, self.activation, self.filter,
                          rank=max(self.rank, size.dim()), pad_zero=self.pad_zero)
        layer.id = self.id
        layer._bias = self._bias
        for coord in size.coords():
            if self.size.contains(coord):
                target = layer._neurons[size.index(coord)]
                source = self._neurons[self.size.index(coord)]
                target.value = source.value
                target.input = source.input
        return layer

    def copy(self) -> 'ConvLayer':
        """Detached copy whose neurons can be overwritten without touching this layer"""
        layer = ConvLayer(self.size, self.channel, self.activation, self.filter,
                          rank=self.rank, pad_zero=self.pad_zero)
        layer.id = self.id
        layer._bias = self._bias
        layer._neurons = [ConvNeuron(n.value, n.input) for n in self._neurons]
        return layer

    # Parameters

    @property
    def bias(self) -> NeuronValue:
        return self._bias

    @bias.setter
    def bias(self, bias: Optional[NeuronValue]):
        self.set_bias(bias)

    def set_bias(self, bias: Optional[Any]) -> bool:
        if bias is None:
            return False
        self._bias = self._coerce(bias)
        return True

    def set_filter(self, filter: Optional[Filter]) -> Optional[Filter]:
        """Install a filter and return the one it replaces"""
        previous = self.filter
        self.filter = filter
        return previous

    def install(self, bias_filter: BiasFilter) -> None:
        """Install a learned filter together with its bias"""
        if bias_filter is None:
            return
        self.set_filter(bias_filter.filter)
        self.set_bias(bias_filter.bias)

    # Engine shortcuts

    def forward(self, destination: 'ConvLayer', filter: Optional[Filter] = None,
                source_region: Optional[Region] = None,
                destination_region: Optional[Region] = None,
                affect_destination: bool = True) -> Optional['forward_engine.ForwardResult']:
        return forward_engine.forward(self, destination, filter, source_region,
                                      destination_region, affect_destination)

    def learn_filter(self, other: 'ConvLayer', initial: Optional[BiasFilter] = None,
                     config: Optional['learning.LearningConfig'] = None) -> Optional['learning.LearnResult']:
        return learning.learn_filter(self, other, initial, config)

    def to_numpy(self) -> np.ndarray:
        """Values as an array shaped (length, channel) in index order"""
        return np.stack([self._coerce(n.value).data for n in self._neurons])

    def __repr__(self):
        return (f"ConvLayer(id={self.id}, rank={self.rank}, size={self.size}, "
                f"channel={self.channel}, pad_zero={self.pad_zero})")


def adjust_values(values: List[NeuronValue], length: int, zero: NeuronValue) -> List[NeuronValue]:
    """Pad with zero or truncate a value list to a length"""
    if len(values) == length:
        return values
    if len(values) > length:
        return values[:length]
    logger.debug(f"Padding {len(values)} values to {length} with zero")
    return values + [zero] * (length - len(values))
