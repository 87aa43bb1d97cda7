"""Tests for convolutional layers."""

import numpy as np
import pytest

from neural_conv.core.activation import ReLU
from neural_conv.core.filters import BiasFilter, ProductFilter
from neural_conv.core.geometry import IdSource, Region, Size
from neural_conv.core.layer import ConvLayer
from neural_conv.core.value import NeuronValue
from neural_conv.exceptions import ConfigurationError


class TestConstruction:
    def test_defaults(self):
        layer = ConvLayer.create2d(4, 3)
        assert layer.rank == 2
        assert layer.size == Size(4, 3)
        assert len(layer) == 12
        assert isinstance(layer.activation, ReLU)
        assert layer.bias == 0.0
        assert layer.filter is None
        assert layer.prev_index is None and layer.next_index is None

    def test_extents_and_channel_are_coerced(self):
        layer = ConvLayer(Size(3, 0, -1), channel=0)
        assert layer.size == Size(3)
        assert layer.channel == 1
        assert layer.rank == 1

    def test_explicit_rank_four(self):
        layer = ConvLayer.create4d(6, 1, 1, 1)
        assert layer.rank == 4
        assert len(layer) == 6

    def test_invalid_rank(self):
        with pytest.raises(ConfigurationError):
            ConvLayer(Size(3), rank=5)

    def test_id_source(self):
        ids = IdSource()
        assert [ConvLayer(Size(2), id_source=ids).id for _ in range(3)] == [0, 1, 2]


class TestAccess:
    def test_get_set_by_coordinate(self, make_layer):
        layer = make_layer([3, 2, 2], range(12))
        assert float(layer.get(1, 1, 1).value) == 1 + 3 * (1 + 2 * 1)
        previous = layer.set(42.0, 2, 0, 1)
        assert float(previous) == 2 + 3 * 2 * 1
        assert float(layer.get(2, 0, 1).value) == 42.0
        assert layer.get_index(layer.index_of(2, 0, 1)).value == 42.0

    def test_access_outside_layer(self, make_layer):
        layer = make_layer([6, 2], range(12))
        assert layer.get(7) is None
        assert layer.get(-1) is None
        assert layer.index_of(0, 2) is None
        assert layer.value_at((6, 0)) is None
        assert layer.input_at((-1, 0)) is None
        assert layer.set(9, 7) is None
        assert [float(v) for v in layer.get_data()] == list(range(12))

    def test_get_data_region_is_clamped(self, make_layer):
        layer = make_layer([4, 4], range(16))
        data = layer.get_data(Region.span(x=2, width=5, y=3, height=3))
        assert [float(v) for v in data] == [14, 15]
        assert layer.get_data(Region.span(x=9, width=2)) is None

    def test_set_data_pads_and_truncates(self, make_layer):
        layer = make_layer([4])
        written = layer.set_data([1, 2])
        assert [float(v) for v in written] == [1, 2, 0, 0]
        layer.set_data([9, 8, 7, 6, 5, 4])
        assert [float(v) for v in layer.get_data()] == [9, 8, 7, 6]

    def test_set_data_region(self, make_layer):
        layer = make_layer([3, 3])
        layer.set_data([1, 2, 3, 4], Region.span(x=1, width=2, y=1, height=2))
        assert [float(v) for v in layer.get_data()] == [0, 0, 0, 0, 1, 2, 0, 3, 4]
        assert layer.set_data([1], Region.span(x=5, width=1)) is None

    def test_negative_region(self, make_layer):
        layer = make_layer([6], [1, 2, 3, 4, 5, 6])
        assert layer.get_data(Region.span(x=-10, width=3)) is None
        assert [float(v) for v in layer.get_data(Region.span(x=-5, width=6))] == [1]
        assert [float(v) for v in layer.get_data(Region.span(x=-2, width=4))] == [1, 2]

        assert layer.set_data([9, 9, 9], Region.span(x=-10, width=3)) is None
        assert [float(v) for v in layer.get_data()] == [1, 2, 3, 4, 5, 6]
        layer.set_data([9, 9], Region.span(x=-1, width=2))
        assert [float(v) for v in layer.get_data()] == [9, 2, 3, 4, 5, 6]

    def test_set_array_multichannel(self):
        layer = ConvLayer(Size(2), channel=2)
        layer.set_array(np.array([[1.0, 2.0], [3.0, 4.0]]))
        assert layer.get(1).value == NeuronValue([3.0, 4.0])
        assert layer.to_numpy().shape == (2, 2)

    def test_resize(self, make_layer):
        layer = make_layer([2, 2], [1, 2, 3, 4])
        bigger = layer.resize(Size(3, 2))
        assert [float(v) for v in bigger.get_data()] == [1, 2, 0, 3, 4, 0]
        smaller = layer.resize(Size(1, 2))
        assert [float(v) for v in smaller.get_data()] == [1, 3]
        assert len(layer) == 4

    def test_copy_is_detached(self, make_layer):
        layer = make_layer([2], [1, 2])
        copy = layer.copy()
        copy.set(5.0, 0)
        assert float(layer.get(0).value) == 1.0


class TestParameters:
    def test_set_filter_returns_previous(self):
        layer = ConvLayer(Size(4))
        first = ProductFilter.create([1, 1])
        assert layer.set_filter(first) is None
        assert layer.set_filter(None) is first

    def test_null_bias_is_ignored(self):
        layer = ConvLayer(Size(4))
        assert not layer.set_bias(None)
        assert layer.set_bias(0.5)
        assert layer.bias == 0.5

    def test_install(self):
        layer = ConvLayer(Size(4))
        f = ProductFilter.create([1, 1])
        layer.install(BiasFilter(f, NeuronValue(0.25)))
        assert layer.filter is f
        assert layer.bias == 0.25
