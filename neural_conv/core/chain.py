"""
Neural Conv Layer Chain

Arena of convolutional layers linked by index. Each layer records the
indices of its previous and next layer; rewiring the chain only updates
those indices. Removed layers leave an empty slot so the indices of the
remaining layers stay valid.
"""

from typing import Iterator, List, Optional
import logging

from .filters import BiasFilter, Filter
from .forward import ForwardResult, forward
from .geometry import IdSource, Region
from .layer import ConvLayer
from .learning import LearnResult, LearningConfig, learn_filter
from .region import next_region, prev_region
from ..exceptions import LayerError

logger = logging.getLogger(__name__)


class LayerChain:
    """Ordered chain of layers addressed by stable integer indices"""

    def __init__(self, id_source: Optional[IdSource] = None):
        self.id_source = id_source if id_source is not None else IdSource()
        self._layers: List[Optional[ConvLayer]] = []
        self._head: Optional[int] = None
        self._tail: Optional[int] = None

    def _layer(self, index: Optional[int]) -> Optional[ConvLayer]:
        if index is None or index < 0 or index >= len(self._layers):
            return None
        return self._layers[index]

    def _require(self, index: int) -> ConvLayer:
        layer = self._layer(index)
        if layer is None:
            raise LayerError(f"No layer at index {index}")
        return layer

    def _store(self, layer: ConvLayer) -> int:
        if layer.prev_index is not None or layer.next_index is not None:
            raise LayerError("Layer is already linked into a chain", layer_id=layer.id)
        if layer.id < 0:
            layer.id = self.id_source.next_id()
        self._layers.append(layer)
        return len(self._layers) - 1

    def create(self, *args, **kwargs) -> int:
        """Create a layer sharing this chain's id source and append it"""
        kwargs.setdefault("id_source", self.id_source)
        return self.add(ConvLayer(*args, **kwargs))

    def add(self, layer: ConvLayer) -> int:
        """Append a layer after the current tail and return its index"""
        index = self._store(layer)
        if self._tail is None:
            self._head = index
        else:
            self._layers[self._tail].next_index = index
            layer.prev_index = self._tail
        self._tail = index
        return index

    def insert_after(self, index: int, layer: ConvLayer) -> int:
        """Splice a layer in right after the layer at ``index``"""
        current = self._require(index)
        new_index = self._store(layer)
        old_next = current.next_index

        current.next_index = new_index
        layer.prev_index = index
        layer.next_index = old_next
        if old_next is None:
            self._tail = new_index
        else:
            self._layers[old_next].prev_index = new_index

        logger.debug(f"Inserted layer {layer.id} after {current.id}")
        return new_index

    def remove(self, index: int) -> ConvLayer:
        """Unlink a layer, joining its neighbours, and return it"""
        layer = self._require(index)
        prev_index, next_index = layer.prev_index, layer.next_index

        if prev_index is None:
            self._head = next_index
        else:
            self._layers[prev_index].next_index = next_index
        if next_index is None:
            self._tail = prev_index
        else:
            self._layers[next_index].prev_index = prev_index

        layer.prev_index = None
        layer.next_index = None
        self._layers[index] = None
        return layer

    def reset(self) -> None:
        for layer in self._layers:
            if layer is not None:
                layer.prev_index = None
                layer.next_index = None
        self._layers = []
        self._head = None
        self._tail = None

    # Navigation

    def get(self, index: int) -> Optional[ConvLayer]:
        return self._layer(index)

    def __getitem__(self, index: int) -> ConvLayer:
        return self._require(index)

    def prev(self, index: int) -> Optional[ConvLayer]:
        layer = self._layer(index)
        return self._layer(layer.prev_index) if layer is not None else None

    def next(self, index: int) -> Optional[ConvLayer]:
        layer = self._layer(index)
        return self._layer(layer.next_index) if layer is not None else None

    def indices(self) -> Iterator[int]:
        """Layer indices from head to tail"""
        index = self._head
        while index is not None:
            yield index
            index = self._layers[index].next_index

    def __iter__(self) -> Iterator[ConvLayer]:
        for index in self.indices():
            yield self._layers[index]

    def __len__(self):
        return sum(1 for layer in self._layers if layer is not None)

    @property
    def head(self) -> Optional[ConvLayer]:
        return self._layer(self._head)

    @property
    def tail(self) -> Optional[ConvLayer]:
        return self._layer(self._tail)

    # Engine

    def forward(self, index: int, source_region: Optional[Region] = None,
                destination_region: Optional[Region] = None,
                filter: Optional[Filter] = None) -> Optional[ForwardResult]:
        """Forward a layer into its next layer"""
        return forward(self._layer(index), self.next(index), filter,
                       source_region, destination_region)

    def forward_all(self) -> Optional[ForwardResult]:
        """Forward head to tail; returns the last result or None if a step had no filter"""
        result = None
        for index in list(self.indices())[:-1]:
            result = self.forward(index)
            if result is None:
                logger.debug(f"Forward stopped at layer index {index}")
                return None
        return result

    def next_region(self, index: int, region: Optional[Region] = None) -> Optional[Region]:
        layer = self._layer(index)
        return next_region(layer, None, self.next(index), region)

    def prev_region(self, index: int, region: Optional[Region] = None) -> Optional[Region]:
        prev = self.prev(index)
        return prev_region(self._layer(index), prev, None, region)

    def learn_filter(self, index: int, initial: Optional[BiasFilter] = None,
                     config: Optional[LearningConfig] = None,
                     install: bool = False) -> Optional[LearnResult]:
        """Learn the filter between a layer and its next layer

        With ``install`` the learned filter and bias are installed on the
        larger layer of the pair.
        """
        layer, next_layer = self._layer(index), self.next(index)
        result = learn_filter(layer, next_layer, initial, config)
        if result is not None and install:
            large = layer if len(layer) >= len(next_layer) else next_layer
            large.install(result.bias_filter)
        return result
