"""
Neural Conv Forward Propagation

Evaluates a filter over a source layer and writes the results into a
destination layer. Every destination coordinate is mapped, axis by axis, to
the source coordinate where the filter is evaluated:

* block mode (product filters): ``s = block(d) * stride`` where the block
  index is clamped to the last full block of the source unless the
  destination pads with zero
* slide-by-one mode: the block count is the source extent itself
* transposed filters: ``s = d // stride``, clamped to the last source index
  unless the destination pads with zero

A source coordinate beyond the source extent produces a zero destination
value. The source bias is added to every filter result, which becomes the
neuron input; the activated input becomes the neuron value.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence
import logging

from .filters import Filter, FilterKind
from .geometry import MAX_RANK, Coord, Region, Size
from .region import next_region
from .value import NeuronValue

logger = logging.getLogger(__name__)


@dataclass
class ForwardResult:
    """Destination neurons written by a forward pass

    ``neurons`` are the destination's own neuron objects (or those of a
    scratch copy when the destination is not affected), ordered by the
    index law of ``size``.
    """
    neurons: List
    size: Size
    channel: int

    def values(self) -> List[Optional[NeuronValue]]:
        return [n.value for n in self.neurons]

    def inputs(self) -> List[Optional[NeuronValue]]:
        return [n.input for n in self.neurons]

    def __len__(self):
        return len(self.neurons)


def source_index(d: int, axis: int, filter: Filter, source_extent: int, pad_zero: bool) -> int:
    """Source coordinate on one axis for destination coordinate ``d``"""
    stride = filter.stride(axis)
    if filter.is_transposed:
        s = d // stride
        return s if pad_zero else min(s, source_extent - 1)

    blocks = source_extent if filter.slide_by_one else source_extent // stride
    block = d if pad_zero else min(d, max(blocks - 1, 0))
    return block * stride


def source_coord(dest_coord: Sequence[int], filter: Filter, source_size: Size,
                 pad_zero: bool) -> Coord:
    return tuple(source_index(d, axis, filter, source_size.extent(axis), pad_zero)
                 for axis, d in enumerate(dest_coord))


def _axis_maps(filter: Filter, source_size: Size, dest_size: Size, pad_zero: bool) -> List[List[int]]:
    return [[source_index(d, axis, filter, source_size.extent(axis), pad_zero)
             for d in range(dest_size.extent(axis))]
            for axis in range(MAX_RANK)]


def forward(source, destination, filter: Optional[Filter] = None,
            source_region: Optional[Region] = None,
            destination_region: Optional[Region] = None,
            affect_destination: bool = True) -> Optional[ForwardResult]:
    """Forward a source layer into a destination layer through a filter

    Args:
        source: Layer the filter reads from
        destination: Layer receiving the results
        filter: Filter to apply; defaults to the source layer's filter
        source_region: Only source anchors inside this region are evaluated
        destination_region: Only destination coordinates inside this region
            are written; ignored when a source region is given
        affect_destination: When False, results go to a scratch copy

    Returns:
        The written destination neurons, restricted to the touched sub-box
        when a region is given, or None when a layer or the filter is absent
    """
    if source is None or destination is None:
        return None
    filter = filter if filter is not None else source.filter
    if filter is None:
        return None

    target = destination if affect_destination else destination.copy()
    neurons = target.neurons()
    if not neurons:
        return None

    zero = target.new_value()
    with_conv = filter.kind is FilterKind.TRANSPOSE_WITH_CONV
    if with_conv:
        for neuron in neurons:
            neuron.value = None
            neuron.input = None

    if source_region is not None and destination_region is not None:
        logger.warning("Both source and destination regions given; destination region ignored")
        destination_region = None

    activation = target.activation if target.activation is not None else source.activation
    bias = source.bias
    source_size = source.size
    dest_size = target.size
    maps = _axis_maps(filter, source_size, dest_size, target.pad_zero)
    logger.debug(f"Forward {source_size} -> {dest_size} with {type(filter).__name__}")

    for index, d in enumerate(dest_size.coords()):
        neuron = neurons[index]
        s = (maps[0][d[0]], maps[1][d[1]], maps[2][d[2]], maps[3][d[3]])
        if not source_size.contains(s):
            neuron.value = zero
            continue
        if source_region is not None and not source_region.contains(s):
            continue
        if destination_region is not None and not destination_region.contains(d):
            continue

        if with_conv:
            value = filter.apply_transposed(s, source, d, target)
        else:
            value = filter.apply(s, source)

        if value is None:
            neuron.value = zero
            continue
        if bias is not None:
            value = value.add(bias)
        neuron.input = value
        neuron.value = activation.evaluate(value) if activation is not None else value

    if with_conv:
        for neuron in neurons:
            if neuron.value is None:
                neuron.value = zero
            if neuron.input is None:
                neuron.input = zero

    if source_region is None and destination_region is None:
        return ForwardResult(neurons, dest_size, target.channel)

    if source_region is not None:
        touched = next_region(source, filter, target, source_region)
    else:
        touched = destination_region.clamp(dest_size)
    if touched is None:
        return ForwardResult(neurons, dest_size, target.channel)

    view = [neurons[dest_size.index(c)] for c in touched.coords()]
    return ForwardResult(view, touched.size, target.channel)
