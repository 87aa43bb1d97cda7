"""
Neural Conv Geometry

Size and region descriptors shared by layers, filters and region mapping,
together with the index law that flattens a coordinate on up to four axes
(width, height, depth, time) into a position of a row-major buffer whose
width axis varies fastest.
"""

import itertools
from dataclasses import dataclass, field, replace
from typing import Iterator, Optional, Sequence, Tuple

MAX_RANK = 4
AXES = ('width', 'height', 'depth', 'time')

Coord = Tuple[int, int, int, int]


def pad_coord(coord: Sequence[int], fill: int = 0) -> Coord:
    """Extend a short coordinate to the four axes"""
    values = list(coord)[:MAX_RANK]
    values.extend([fill] * (MAX_RANK - len(values)))
    return tuple(int(v) for v in values)


def flatten(coord: Sequence[int], extents: Sequence[int]) -> int:
    """Linear index of a coordinate: sum of coord_i times the product of the lower extents"""
    index = 0
    stride = 1
    for c, e in zip(coord, extents):
        index += c * stride
        stride *= e
    return index


def unflatten(index: int, extents: Sequence[int]) -> Coord:
    """Inverse of flatten for the four axes"""
    coord = []
    for e in pad_coord(extents, 1):
        coord.append(index % e)
        index //= e
    return tuple(coord)


def iter_coords(extents: Sequence[int]) -> Iterator[Coord]:
    """Visit every coordinate with the outermost axis first and width fastest"""
    w, h, d, t = pad_coord(extents, 1)
    for tt, zz, yy, xx in itertools.product(range(t), range(d), range(h), range(w)):
        yield (xx, yy, zz, tt)


@dataclass(frozen=True)
class Size:
    """Extents of a layer or content on the four axes

    Any extent below 1 is normalised to 1, so a width-only size is a
    four-axis size with unit height, depth and time.
    """
    width: int = 1
    height: int = 1
    depth: int = 1
    time: int = 1

    def __post_init__(self):
        for axis in AXES:
            value = int(getattr(self, axis))
            object.__setattr__(self, axis, value if value >= 1 else 1)

    @classmethod
    def of(cls, extents: Sequence[int]) -> 'Size':
        return cls(*pad_coord(extents, 1))

    @classmethod
    def unit(cls) -> 'Size':
        return cls()

    @property
    def extents(self) -> Coord:
        return (self.width, self.height, self.depth, self.time)

    def extent(self, axis: int) -> int:
        return self.extents[axis]

    def length(self) -> int:
        return self.width * self.height * self.depth * self.time

    def dim(self) -> int:
        """Highest axis whose extent exceeds one (1 for a lone width)"""
        for axis in range(MAX_RANK - 1, 0, -1):
            if self.extents[axis] > 1:
                return axis + 1
        return 1

    def with_extent(self, axis: int, value: int) -> 'Size':
        return replace(self, **{AXES[axis]: value})

    def index(self, coord: Sequence[int]) -> int:
        return flatten(pad_coord(coord), self.extents)

    def coord(self, index: int) -> Coord:
        return unflatten(index, self.extents)

    def contains(self, coord: Sequence[int]) -> bool:
        return all(0 <= c < e for c, e in zip(pad_coord(coord), self.extents))

    def coords(self) -> Iterator[Coord]:
        return iter_coords(self.extents)

    def __str__(self):
        return 'x'.join(str(e) for e in self.extents)


@dataclass(frozen=True)
class Region:
    """Axis-aligned box given by an origin and an extent on the four axes"""
    origin: Coord = (0, 0, 0, 0)
    extent: Coord = (1, 1, 1, 1)

    def __post_init__(self):
        object.__setattr__(self, 'origin', pad_coord(self.origin, 0))
        object.__setattr__(self, 'extent', pad_coord(self.extent, 1))

    @classmethod
    def full(cls, size: Size) -> 'Region':
        return cls((0, 0, 0, 0), size.extents)

    @classmethod
    def span(cls, x: int = 0, width: int = 1, y: int = 0, height: int = 1,
             z: int = 0, depth: int = 1, t: int = 0, time: int = 1) -> 'Region':
        return cls((x, y, z, t), (width, height, depth, time))

    @property
    def x(self) -> int:
        return self.origin[0]

    @property
    def y(self) -> int:
        return self.origin[1]

    @property
    def z(self) -> int:
        return self.origin[2]

    @property
    def t(self) -> int:
        return self.origin[3]

    @property
    def size(self) -> Size:
        return Size.of(self.extent)

    def length(self) -> int:
        total = 1
        for e in self.extent:
            total *= max(e, 0)
        return total

    def is_empty(self) -> bool:
        return any(e <= 0 for e in self.extent)

    def contains(self, coord: Sequence[int]) -> bool:
        return all(o <= c < o + e for c, o, e in zip(pad_coord(coord), self.origin, self.extent))

    def clamp(self, size: Size) -> Optional['Region']:
        """Intersection with a layer's bounds, or None when nothing is left

        The part of an axis before zero and the part past the far boundary
        are both cut off.
        """
        origin = []
        extent = []
        for o, e, limit in zip(self.origin, self.extent, size.extents):
            if o < 0:
                e += o
                o = 0
            e = e if o + e <= limit else limit - o
            if e <= 0:
                return None
            origin.append(o)
            extent.append(e)
        return Region(tuple(origin), tuple(extent))

    def coords(self) -> Iterator[Coord]:
        for coord in iter_coords(self.extent):
            yield tuple(c + o for c, o in zip(coord, self.origin))

    def with_axis(self, axis: int, origin: int, extent: int) -> 'Region':
        new_origin = list(self.origin)
        new_extent = list(self.extent)
        new_origin[axis] = origin
        new_extent[axis] = extent
        return Region(tuple(new_origin), tuple(new_extent))


@dataclass
class IdSource:
    """Monotonically increasing identifier source shared by a network's layers

    Identifiers are used for diagnostics only, never for addressing.
    """
    start: int = 0
    _counter: Iterator[int] = field(init=False, repr=False)

    def __post_init__(self):
        self._counter = itertools.count(self.start)

    def next_id(self) -> int:
        return next(self._counter)
