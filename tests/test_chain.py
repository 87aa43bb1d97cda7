"""Tests for the index-linked layer chain."""

import pytest

from neural_conv.core.chain import LayerChain
from neural_conv.core.filters import ProductFilter, ZoomInFilter
from neural_conv.core.geometry import Region, Size
from neural_conv.core.learning import LearningConfig
from neural_conv.exceptions import LayerError


def values(layer):
    return [float(v) for v in layer.get_data()]


@pytest.fixture
def chain(make_layer):
    chain = LayerChain()
    chain.add(make_layer([8], range(1, 9), filter=ProductFilter.create([1, 1], weight=0.5)))
    chain.add(make_layer([4], filter=ZoomInFilter((2,))))
    chain.add(make_layer([8]))
    return chain


class TestLinks:
    def test_add_links_in_order(self, chain):
        assert len(chain) == 3
        assert [layer.size.width for layer in chain] == [8, 4, 8]
        assert chain[0].next_index == 1
        assert chain[1].prev_index == 0 and chain[1].next_index == 2
        assert chain.prev(0) is None
        assert chain.next(2) is None
        assert chain.head is chain[0]
        assert chain.tail is chain[2]

    def test_ids_are_assigned(self, chain):
        assert [layer.id for layer in chain] == [0, 1, 2]

    def test_insert_after(self, chain, make_layer):
        index = chain.insert_after(0, make_layer([6]))
        assert index == 3
        assert list(chain.indices()) == [0, 3, 1, 2]
        assert chain.next(0) is chain[3]
        assert chain.prev(1) is chain[3]

    def test_insert_after_tail(self, chain, make_layer):
        index = chain.insert_after(2, make_layer([2]))
        assert chain.tail is chain[index]

    def test_remove_keeps_indices(self, chain):
        removed = chain.remove(1)
        assert removed.prev_index is None and removed.next_index is None
        assert len(chain) == 2
        assert chain.next(0) is chain[2]
        assert chain.prev(2) is chain[0]
        assert chain.get(1) is None
        with pytest.raises(LayerError):
            chain[1]

    def test_remove_head(self, chain):
        chain.remove(0)
        assert chain.head is chain[1]
        assert chain.prev(1) is None

    def test_linked_layer_cannot_be_added_twice(self, chain):
        with pytest.raises(LayerError):
            chain.add(chain[1])

    def test_create_shares_id_source(self):
        chain = LayerChain()
        first = chain.create(Size(4))
        second = chain.create(Size(2))
        assert chain[first].id == 0 and chain[second].id == 1

    def test_reset(self, chain):
        layer = chain[0]
        chain.reset()
        assert len(chain) == 0
        assert chain.head is None
        assert layer.next_index is None


class TestEngine:
    def test_forward_uses_installed_filter(self, chain):
        result = chain.forward(0)
        assert [float(v) for v in result.values()] == [1.5, 3.5, 5.5, 7.5]

    def test_forward_all(self, chain):
        result = chain.forward_all()
        assert [float(v) for v in result.values()] == [1.5, 1.5, 3.5, 3.5, 5.5, 5.5, 7.5, 7.5]
        assert values(chain.tail) == [1.5, 1.5, 3.5, 3.5, 5.5, 5.5, 7.5, 7.5]

    def test_forward_all_stops_without_filter(self, chain):
        chain[1].set_filter(None)
        assert chain.forward_all() is None

    def test_forward_from_tail(self, chain):
        assert chain.forward(2) is None

    def test_regions(self, chain):
        assert chain.next_region(0, Region.span(x=2, width=4)) == Region.span(x=1, width=2)
        assert chain.prev_region(1, Region.span(x=1, width=2)) == Region.span(x=2, width=4)
        assert chain.next_region(1, Region.span(x=1, width=1)) == Region.span(x=2, width=2)
        assert chain.prev_region(0) is None

    def test_learn_filter_and_install(self, make_layer):
        chain = LayerChain()
        data = [0.1, 0.3, 0.2, 0.6, 0.9, 0.5, 0.4, 0.8]
        chain.add(make_layer([8], data))
        chain.add(make_layer([4], [(a + b) / 2 for a, b in zip(data[::2], data[1::2])]))
        config = LearningConfig(max_iteration=50, learning_rate=0.5, fixed_rate=True)
        result = chain.learn_filter(0, config=config, install=True)
        assert chain[0].filter is result.filter
        assert chain[0].bias == result.bias
        assert chain[1].filter is None
