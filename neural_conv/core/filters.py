"""
Neural Conv Filters

Filters applied by the forward propagation engine. A filter addresses one
to four axes; its stride on each axis defaults to its kernel extent (the
source anchor jumps block by block) or to one in slide-by-one mode. Every
filter carries a kind tag that tells the engine how destination and source
coordinates correspond:

* PRODUCT: the destination is smaller or equal, source = block * stride
* TRANSPOSE: the destination is larger, source = destination / stride
* TRANSPOSE_WITH_CONV: transposed mapping whose value also depends on the
  destination coordinate (inverse of a product filter)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, Union
import logging

import numpy as np

from .activation import Activation
from .geometry import MAX_RANK, Coord, Size, iter_coords, pad_coord
from .value import NeuronValue
from ..exceptions import DerivativeNotImplementedError, FilterError

logger = logging.getLogger(__name__)


class FilterKind(Enum):
    PRODUCT = "product"
    TRANSPOSE = "transpose"
    TRANSPOSE_WITH_CONV = "transpose_with_conv"


class Filter(ABC):
    """Base class of all filters

    Subclasses implement ``apply`` which evaluates the filter at a source
    coordinate of a layer. A layer-like argument must expose ``size``,
    ``pad_zero``, ``value_at(coord)`` and ``new_value()``.
    """

    kind = FilterKind.PRODUCT

    def __init__(self, kernel_size: Sequence[int], slide_by_one: bool = False,
                 stride: Optional[Sequence[int]] = None):
        rank = len(kernel_size)
        if rank < 1 or rank > MAX_RANK:
            raise FilterError("Kernel must address between 1 and 4 axes", rank=rank)
        if any(int(k) < 1 for k in kernel_size):
            raise FilterError("Kernel extents must be positive", rank=rank,
                              kernel_size=tuple(kernel_size))

        self.rank = rank
        self.kernel_size: Coord = pad_coord(kernel_size, 1)
        self.slide_by_one = slide_by_one
        self._stride = None
        if stride is not None:
            self.set_stride(stride)

    @property
    def is_transposed(self) -> bool:
        return self.kind is not FilterKind.PRODUCT

    def set_stride(self, stride: Sequence[int]) -> bool:
        """Override the per-axis stride; non-positive entries are rejected"""
        stride = pad_coord(stride, 1)
        if any(s <= 0 for s in stride):
            return False
        self._stride = stride
        return True

    def stride(self, axis: int) -> int:
        if self._stride is not None:
            return self._stride[axis]
        if self.slide_by_one:
            return 1
        return self.kernel_size[axis]

    @property
    def strides(self) -> Coord:
        return tuple(self.stride(axis) for axis in range(MAX_RANK))

    @property
    def taps(self) -> List[Coord]:
        """Kernel offsets in buffer order (width fastest)"""
        return list(iter_coords(self.kernel_size))

    @abstractmethod
    def apply(self, coord: Sequence[int], layer) -> Optional[NeuronValue]:
        """Evaluate the filter with its anchor at ``coord`` in ``layer``"""
        pass

    def apply_transposed(self, coord: Sequence[int], source, dest_coord: Sequence[int],
                         destination) -> Optional[NeuronValue]:
        """Evaluate a filter that depends on both ends; plain filters ignore the destination"""
        return self.apply(coord, source)

    def d_kernel(self, coord, dest_coord, source, destination) -> Optional[List[NeuronValue]]:
        raise DerivativeNotImplementedError("d_kernel", rank=self.rank, filter_kind=self.kind.value)

    def d_value(self, coord, dest_coord, source, destination) -> Optional[List[NeuronValue]]:
        raise DerivativeNotImplementedError("d_value", rank=self.rank, filter_kind=self.kind.value)

    # Shared addressing helpers

    def fit_window(self, coord: Sequence[int], layer) -> Union[Coord, NeuronValue, None]:
        """Anchor of the kernel window for ``coord``

        Returns the anchor shifted left so the window fits, or, when the
        layer pads with zero, a zero value for a partial window and None
        for an anchor beyond the layer.
        """
        anchor = []
        for axis, (x, k, e) in enumerate(zip(pad_coord(coord), self.kernel_size, layer.size.extents)):
            if x + k > e:
                if layer.pad_zero:
                    if x >= e:
                        return None
                    return layer.new_value()
                x = e - k
            anchor.append(x if x >= 0 else 0)
        return tuple(anchor)

    @staticmethod
    def fit_point(coord: Sequence[int], layer) -> Optional[Coord]:
        """Single-cell anchor clamped to the layer, or None beyond a zero-padded layer"""
        point = []
        for x, e in zip(pad_coord(coord), layer.size.extents):
            if x >= e:
                if layer.pad_zero:
                    return None
                x = e - 1
            point.append(x if x >= 0 else 0)
        return tuple(point)

    def to_text(self) -> str:
        return (f"{type(self).__name__}(kernel={self.kernel_size[:self.rank]}, "
                f"stride={self.strides[:self.rank]}, slide_by_one={self.slide_by_one})")

    def __repr__(self):
        return self.to_text()


def _tap_coord(anchor: Coord, offset: Coord) -> Coord:
    return (anchor[0] + offset[0], anchor[1] + offset[1],
            anchor[2] + offset[2], anchor[3] + offset[3])


class ProductFilter(Filter):
    """Weighted kernel product: ``weight * sum(kernel[tap] * source[anchor + tap])``"""

    def __init__(self, kernel: Sequence[NeuronValue], kernel_size: Sequence[int],
                 weight: NeuronValue, slide_by_one: bool = False,
                 stride: Optional[Sequence[int]] = None):
        super().__init__(kernel_size, slide_by_one, stride)
        expected = int(np.prod(self.kernel_size))
        if len(kernel) != expected:
            raise FilterError(f"Kernel has {len(kernel)} taps, expected {expected}",
                              rank=self.rank, kernel_size=tuple(kernel_size))
        self.kernel: List[NeuronValue] = list(kernel)
        self.weight = weight
        self._taps = self.taps

    @classmethod
    def create(cls, kernel: Any, weight: float = 1.0, channel: int = 1,
               slide_by_one: bool = False, stride: Optional[Sequence[int]] = None) -> 'ProductFilter':
        """Build a filter from a nested list or array indexed [t][z][y][x]

        The array's last axis is the width axis, so a 2-D kernel is given as
        rows of the height axis.
        """
        array = np.asarray(kernel, dtype=np.float64)
        if array.ndim == 0:
            array = array.reshape(1)
        kernel_size = tuple(reversed(array.shape))
        source = NeuronValue.zeros(channel)
        values = [source.value_of(v) for v in array.reshape(-1)]
        return cls(values, kernel_size, source.value_of(weight), slide_by_one, stride)

    @classmethod
    def zeros(cls, kernel_size: Sequence[int], channel: int = 1,
              slide_by_one: bool = False) -> 'ProductFilter':
        zero = NeuronValue.zeros(channel)
        count = int(np.prod(pad_coord(kernel_size, 1)))
        return cls([zero] * count, kernel_size, zero.unit(), slide_by_one)

    def kernel_array(self) -> np.ndarray:
        """Kernel as an array shaped [..., y, x] (channel components last)"""
        shape = tuple(reversed(self.kernel_size[:self.rank]))
        data = np.stack([v.data for v in self.kernel])
        return data.reshape(shape + (data.shape[-1],))

    def apply(self, coord, layer):
        if layer is None:
            return None

        anchor = self.fit_window(coord, layer)
        if anchor is None or isinstance(anchor, NeuronValue):
            return anchor

        size = layer.size
        result = layer.new_value()
        for tap, offset in zip(self.kernel, self._taps):
            point = _tap_coord(anchor, offset)
            if not size.contains(point):
                continue
            result = result.add(layer.value_at(point).multiply(tap))

        return result.multiply(self.weight)

    def d_kernel(self, coord, dest_coord, source, destination):
        if self.rank <= 1:
            raise DerivativeNotImplementedError("d_kernel", rank=1, filter_kind=self.kind.value)
        if not destination.size.contains(dest_coord):
            return None

        anchor = self.fit_window(coord, source)
        if anchor is None or isinstance(anchor, NeuronValue):
            return None

        activation = destination.activation or source.activation
        dest_value = destination.value_at(dest_coord)
        derivatives = []
        for offset in self._taps:
            point = _tap_coord(anchor, offset)
            if not source.size.contains(point):
                derivatives.append(source.new_value())
                continue
            value = source.value_at(point).multiply(dest_value)
            if activation is not None:
                net = source.input_at(point)
                if net is not None:
                    value = value.multiply(activation.derivative(net))
            derivatives.append(value.multiply(self.weight))
        return derivatives

    def d_value(self, coord, dest_coord, source, destination):
        if self.rank <= 1:
            raise DerivativeNotImplementedError("d_value", rank=1, filter_kind=self.kind.value)
        if not destination.size.contains(dest_coord):
            return None

        anchor = self.fit_window(coord, source)
        if anchor is None or isinstance(anchor, NeuronValue):
            return None

        activation = destination.activation or source.activation
        dest_value = destination.value_at(dest_coord)
        derivatives = []
        for tap, offset in zip(self.kernel, self._taps):
            point = _tap_coord(anchor, offset)
            value = tap.multiply(dest_value)
            if activation is not None and source.size.contains(point):
                net = source.input_at(point)
                if net is not None:
                    value = value.multiply(activation.derivative(net))
            derivatives.append(value.multiply(self.weight))
        return derivatives

    def to_text(self) -> str:
        kernel = ", ".join(repr(v) for v in self.kernel)
        return (f"kernel = {{{kernel}}}, weight = {self.weight!r}, "
                f"slide by one = {self.slide_by_one}, stride = {self.strides[:self.rank]}")


class ZoomOutFilter(Filter):
    """Down-sampling filter picking the anchor value of each block"""

    def apply(self, coord, layer):
        if layer is None:
            return None
        point = self.fit_point(coord, layer)
        return layer.value_at(point) if point is not None else None


class MaxPoolFilter(Filter):
    """Maximum over the kernel window"""

    def apply(self, coord, layer):
        if layer is None:
            return None

        anchor = self.fit_window(coord, layer)
        if anchor is None or isinstance(anchor, NeuronValue):
            return anchor

        result = None
        for offset in self.taps:
            point = _tap_coord(anchor, offset)
            if not layer.size.contains(point):
                continue
            value = layer.value_at(point)
            result = value if result is None else result.max(value)
        return result


class FunctionFilter(Filter):
    """Applies a function to the anchor value"""

    def __init__(self, function: Activation, rank: int = 1):
        super().__init__((1,) * rank)
        self.function = function

    def apply(self, coord, layer):
        if layer is None:
            return None
        point = self.fit_point(coord, layer)
        if point is None:
            return None
        return self.function.evaluate(layer.value_at(point))


class NegativeFilter(Filter):
    """Reflects a value against a maximum: ``max - value``"""

    def __init__(self, max_value: NeuronValue, rank: int = 2):
        super().__init__((1,) * rank)
        self.max_value = max_value

    def apply(self, coord, layer):
        if layer is None:
            return None
        point = self.fit_point(coord, layer)
        if point is None:
            return None
        return self.max_value.subtract(layer.value_at(point))


class ZoomInFilter(Filter):
    """Up-sampling filter replicating each source value over a stride block"""

    kind = FilterKind.TRANSPOSE

    def apply(self, coord, layer):
        if layer is None:
            return None
        point = self.fit_point(coord, layer)
        return layer.value_at(point) if point is not None else None


class DeconvConvFilter(Filter):
    """Transposed filter that inverts a product filter

    Each destination value is solved from the source value and the
    destination neighbours already written in the same window; unwritten
    neighbours fall back to the source value.
    """

    kind = FilterKind.TRANSPOSE_WITH_CONV

    def __init__(self, conv: ProductFilter):
        super().__init__(conv.kernel_size[:conv.rank], conv.slide_by_one, conv._stride)
        self.conv = conv

    def apply(self, coord, layer):
        return self.conv.apply(coord, layer)

    def apply_transposed(self, coord, source, dest_coord, destination):
        if source is None and destination is None:
            return None
        if destination is None:
            return self.apply(coord, source)

        coord = pad_coord(coord)
        dest_coord = pad_coord(dest_coord)
        origin = []
        for axis in range(MAX_RANK):
            k = self.conv.kernel_size[axis]
            e = destination.size.extent(axis)
            o = coord[axis] * self.conv.stride(axis)
            if o + k > e:
                if destination.pad_zero:
                    if o >= e:
                        return None
                    return destination.new_value()
                o = e - k
            if o < 0 or o >= e:
                return None
            if dest_coord[axis] < o or o + k <= dest_coord[axis]:
                return None
            origin.append(o)
        origin = tuple(origin)

        own = source.value_at(coord)
        partial = destination.new_value()
        own_tap = None
        for tap, offset in zip(self.conv.kernel, self.conv.taps):
            point = _tap_coord(origin, offset)
            if point == dest_coord:
                own_tap = tap
                continue
            value = destination.value_at(point)
            value = own if value is None else value
            partial = partial.add(value.multiply(tap))
        partial = partial.multiply(self.conv.weight)

        result = own
        if own_tap is not None and own_tap.can_invert():
            result = result.subtract(partial).divide(own_tap.multiply(self.conv.weight))
        return result


@dataclass
class BiasFilter:
    """A filter paired with the bias learned or installed alongside it"""
    filter: Optional[Filter] = None
    bias: Optional[NeuronValue] = None

    def to_text(self) -> str:
        parts = []
        if self.filter is not None:
            parts.append(f"filter = {{{self.filter.to_text()}}}")
        if self.bias is not None:
            parts.append(f"bias = ({self.bias!r})")
        return ", ".join(parts)


class FilterFactory:
    """Creates filters whose values match a channel count"""

    def __init__(self, channel: int = 1):
        self.channel = max(channel, 1)

    def _value(self, value) -> NeuronValue:
        return NeuronValue.zeros(self.channel).value_of(value)

    def product(self, kernel: Any, weight: float = 1.0, slide_by_one: bool = False,
                stride: Optional[Sequence[int]] = None) -> ProductFilter:
        return ProductFilter.create(kernel, weight, self.channel, slide_by_one, stride)

    def zoom_out(self, *ratio: int) -> ZoomOutFilter:
        return ZoomOutFilter(ratio or (1,))

    def zoom_in(self, *ratio: int) -> ZoomInFilter:
        return ZoomInFilter(ratio or (1,))

    def max_pool(self, *kernel_size: int) -> MaxPoolFilter:
        return MaxPoolFilter(kernel_size or (1,))

    def function(self, function: Activation, rank: int = 1) -> FunctionFilter:
        return FunctionFilter(function, rank)

    def negative(self, max_value: float = 1.0, rank: int = 2) -> NegativeFilter:
        return NegativeFilter(self._value(max_value), rank)

    def deconv_conv(self, kernel: Any, weight: float = 1.0) -> DeconvConvFilter:
        return DeconvConvFilter(self.product(kernel, weight))

    def zoom(self, ratio: Sequence[int], zoom_out: bool = True) -> Optional[Filter]:
        """Zoom filter for a per-axis ratio, or None when every ratio is one"""
        ratio = tuple(max(int(r), 1) for r in ratio)
        if all(r <= 1 for r in ratio):
            return None
        while len(ratio) > 1 and ratio[-1] <= 1:
            ratio = ratio[:-1]
        return self.zoom_out(*ratio) if zoom_out else self.zoom_in(*ratio)


def output_size(size: Size, *filters: Filter) -> Size:
    """Destination size produced by passing ``size`` through ``filters`` in turn"""
    extents = list(size.extents)
    for f in filters:
        if f is None:
            continue
        for axis in range(MAX_RANK):
            if f.is_transposed:
                extents[axis] *= f.stride(axis)
            else:
                extents[axis] //= f.stride(axis)
    return Size.of(extents)

