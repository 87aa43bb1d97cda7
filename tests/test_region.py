"""Tests for region mapping between neighbouring layers."""

from neural_conv.core.filters import ProductFilter, ZoomInFilter, ZoomOutFilter
from neural_conv.core.geometry import Region, Size
from neural_conv.core.layer import ConvLayer
from neural_conv.core.region import next_region, next_region_at, prev_region, prev_region_at


def span(region):
    return region.x, region.extent[0]


class TestNextRegion:
    def test_block_filter(self):
        f = ProductFilter.create([1, 1])
        source, destination = ConvLayer(Size(8)), ConvLayer(Size(4))
        assert span(next_region(source, f, destination, Region.span(x=2, width=4))) == (1, 2)
        assert span(next_region(source, f, destination, Region.span(x=6, width=6))) == (3, 1)
        assert span(next_region(source, f, destination, Region.span(x=4, width=1))) == (2, 1)

    def test_transposed_filter(self):
        f = ZoomInFilter((2,))
        source, destination = ConvLayer(Size(3)), ConvLayer(Size(6))
        assert span(next_region(source, f, destination, Region.span(x=1, width=1))) == (2, 2)
        assert span(next_region(source, f, destination, Region.span(x=2, width=2))) == (4, 2)

    def test_whole_layer_by_default(self):
        source = ConvLayer(Size(8, 6), filter=ProductFilter.create([[1, 1], [1, 1]]))
        region = next_region(source, None, ConvLayer(Size(4, 3)))
        assert region == Region((0, 0, 0, 0), (4, 3, 1, 1))

    def test_absent_inputs(self):
        source, destination = ConvLayer(Size(8)), ConvLayer(Size(4))
        assert next_region(source, None, destination) is None
        f = ProductFilter.create([1, 1])
        assert next_region(source, f, None) is None
        assert next_region(source, f, destination, Region.span(x=20, width=2)) is None

    def test_empty_after_clamp(self):
        f = ZoomInFilter((2,))
        source, destination = ConvLayer(Size(4)), ConvLayer(Size(4))
        assert next_region(source, f, destination, Region.span(x=3, width=1)) is None


class TestPrevRegion:
    def test_block_filter(self):
        f = ProductFilter.create([1, 1])
        layer, prev = ConvLayer(Size(4)), ConvLayer(Size(8), filter=f)
        assert span(prev_region(layer, prev, None, Region.span(x=1, width=2))) == (2, 4)
        assert span(prev_region(layer, prev, f, Region.span(x=3, width=1))) == (6, 2)

    def test_block_index_is_clamped(self):
        f = ProductFilter.create([1, 1])
        layer, prev = ConvLayer(Size(4)), ConvLayer(Size(7))
        assert span(prev_region(layer, prev, f, Region.span(x=3, width=1))) == (4, 2)

    def test_transposed_filter(self):
        f = ZoomInFilter((2,))
        layer, prev = ConvLayer(Size(6)), ConvLayer(Size(3))
        assert span(prev_region(layer, prev, f, Region.span(x=4, width=2))) == (2, 1)
        assert span(prev_region(layer, prev, f, Region.span(x=0, width=6))) == (0, 3)

    def test_missing_filter(self):
        assert prev_region(ConvLayer(Size(4)), ConvLayer(Size(8))) is None


class TestPointRegions:
    def test_next_point(self):
        source, destination = ConvLayer(Size(8)), ConvLayer(Size(4))
        assert span(next_region_at(source, ProductFilter.create([1, 1]), destination, (5,))) == (2, 1)

        source, destination = ConvLayer(Size(3)), ConvLayer(Size(6))
        assert span(next_region_at(source, ZoomInFilter((2,)), destination, (1,))) == (2, 2)
        assert next_region_at(source, ZoomInFilter((2,)), destination, (3,)) is None

    def test_prev_point(self):
        f = ProductFilter.create([1, 1])
        assert span(prev_region_at(ConvLayer(Size(4)), ConvLayer(Size(8)), f, (3,))) == (6, 2)
        assert span(prev_region_at(ConvLayer(Size(6)), ConvLayer(Size(3)), ZoomInFilter((2,)), (5,))) == (2, 1)


def test_rank_four_maps_time_axis():
    f = ZoomOutFilter((2, 2, 2, 2))
    source = ConvLayer(Size(4, 4, 4, 4))
    destination = ConvLayer(Size(2, 2, 2, 2))
    region = Region((2, 2, 2, 2), (2, 2, 2, 2))

    forward_region = next_region(source, f, destination, region)
    assert forward_region == Region((1, 1, 1, 1), (1, 1, 1, 1))

    back = prev_region(destination, source, f, forward_region)
    assert back == region
