"""
Neural Conv Region Mapping

Maps a box of one layer to the box it touches in a neighbouring layer.
Mapping forward goes from a source region to the destination region the
filter writes; mapping backward goes from a layer region to the region of
the previous layer that produced it, using the previous layer's filter.

Higher ranks are resolved by recursion on the rank: the rank-k mapping
maps the first k-1 axes with the rank-(k-1) mapping and resolves axis k
itself. Every result is clamped to the target layer and an empty result is
reported as None.
"""

from typing import Callable, Optional, Sequence, Tuple
import logging

from .filters import Filter
from .geometry import Region, Size, pad_coord

logger = logging.getLogger(__name__)

# (origin, extent, stride, target extent, filter) -> (origin, extent)
AxisMap = Callable[[int, int, int, int, Filter], Tuple[int, int]]


def _next_axis(origin: int, extent: int, stride: int, limit: int, filter: Filter) -> Tuple[int, int]:
    if filter.is_transposed:
        return origin * stride, extent * stride
    return origin // stride, max(1, extent // stride)


def _prev_axis(origin: int, extent: int, stride: int, limit: int, filter: Filter) -> Tuple[int, int]:
    if filter.is_transposed:
        return min(origin // stride, limit - 1), max(1, extent // stride)
    blocks = limit if filter.slide_by_one else limit // stride
    block = origin if origin < blocks else max(blocks - 1, 0)
    return block * stride, extent * stride


def _next_point(origin: int, extent: int, stride: int, limit: int, filter: Filter) -> Tuple[int, int]:
    if filter.is_transposed:
        return origin * stride, stride
    return origin // stride, 1


def _prev_point(origin: int, extent: int, stride: int, limit: int, filter: Filter) -> Tuple[int, int]:
    if filter.is_transposed:
        return min(origin // stride, limit - 1), 1
    blocks = limit if filter.slide_by_one else limit // stride
    block = origin if origin < blocks else max(blocks - 1, 0)
    return block * stride, stride


def _map_region(rank: int, region: Region, filter: Filter, target: Size,
                axis_map: AxisMap) -> Optional[Region]:
    """Map the first ``rank`` axes of a region onto a target size"""
    if rank <= 0:
        return Region()

    mapped = _map_region(rank - 1, region, filter, target, axis_map)
    if mapped is None:
        return None

    axis = rank - 1
    limit = target.extent(axis)
    origin, extent = axis_map(region.origin[axis], region.extent[axis],
                              filter.stride(axis), limit, filter)
    if origin < 0:
        extent += origin
        origin = 0
    if origin + extent > limit:
        extent = limit - origin
    if extent <= 0:
        return None
    return mapped.with_axis(axis, origin, extent)


def _rank(*layers) -> int:
    return max(layer.rank for layer in layers)


def next_region(source, filter: Optional[Filter], destination,
                region: Optional[Region] = None) -> Optional[Region]:
    """Destination region written when forwarding a source region

    Args:
        source: Source layer
        filter: Filter of the pass; defaults to the source layer's filter
        destination: Destination layer bounding the result
        region: Source region; the whole source when omitted

    Returns:
        The destination region or None when it is empty
    """
    if source is None or destination is None:
        return None
    filter = filter if filter is not None else source.filter
    if filter is None:
        return None

    region = Region.full(source.size) if region is None else region.clamp(source.size)
    if region is None:
        return None
    return _map_region(_rank(source, destination), region, filter, destination.size, _next_axis)


def prev_region(layer, prev_layer, prev_filter: Optional[Filter] = None,
                region: Optional[Region] = None) -> Optional[Region]:
    """Region of the previous layer that produced a region of this layer

    Args:
        layer: This layer
        prev_layer: The previous layer bounding the result
        prev_filter: Filter of the previous layer; defaults to its installed filter
        region: Region of this layer; the whole layer when omitted
    """
    if layer is None or prev_layer is None:
        return None
    prev_filter = prev_filter if prev_filter is not None else prev_layer.filter
    if prev_filter is None:
        return None

    region = Region.full(layer.size) if region is None else region.clamp(layer.size)
    if region is None:
        return None
    return _map_region(_rank(layer, prev_layer), region, prev_filter, prev_layer.size, _prev_axis)


def next_region_at(source, filter: Optional[Filter], destination,
                   coord: Sequence[int]) -> Optional[Region]:
    """Destination footprint of a single source coordinate"""
    if source is None or destination is None:
        return None
    filter = filter if filter is not None else source.filter
    if filter is None or not source.size.contains(coord):
        return None
    point = Region(pad_coord(coord), (1, 1, 1, 1))
    return _map_region(_rank(source, destination), point, filter, destination.size, _next_point)


def prev_region_at(layer, prev_layer, prev_filter: Optional[Filter],
                   coord: Sequence[int]) -> Optional[Region]:
    """Previous-layer footprint of a single coordinate of this layer"""
    if layer is None or prev_layer is None:
        return None
    prev_filter = prev_filter if prev_filter is not None else prev_layer.filter
    if prev_filter is None or not layer.size.contains(coord):
        return None
    point = Region(pad_coord(coord), (1, 1, 1, 1))
    return _map_region(_rank(layer, prev_layer), point, prev_filter, prev_layer.size, _prev_point)
