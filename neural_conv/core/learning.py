"""
Neural Conv Filter Learning

Learns the kernel and bias of a product filter that maps the larger layer
of a pair onto the smaller one, by sweeping the smaller layer and applying
a local gradient step at every coordinate. No autodiff graph is built; the
kernel update for a tap is ``lr * error * source_tap`` and the bias update
is ``lr * error``. The prediction is the filter value under the small
layer's activation; the learned bias is accumulated alongside the kernel
but does not enter the prediction.

Also provides the exact kernel and value derivatives of a forward pass for
product filters of rank two and above.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import logging
import math

import numpy as np
from tqdm import tqdm

from .filters import BiasFilter, Filter, FilterKind, ProductFilter
from .forward import source_coord
from .geometry import MAX_RANK, Region, Size, iter_coords
from .region import prev_region
from .value import NeuronValue
from ..exceptions import (
    DerivativeNotImplementedError,
    validate_learning_rate,
    validate_max_iteration,
)

logger = logging.getLogger(__name__)

LEARN_MAX_ITERATION_DEFAULT = 1000
LEARN_RATE_DEFAULT = 1.0
LEARN_RATE_FIXED_DEFAULT = False
LEARN_RATE_MINIMUM = float(np.finfo(np.float32).tiny)


@dataclass
class LearningConfig:
    """Configuration for iterative filter learning"""
    max_iteration: int = LEARN_MAX_ITERATION_DEFAULT
    learning_rate: float = LEARN_RATE_DEFAULT
    fixed_rate: bool = LEARN_RATE_FIXED_DEFAULT
    learn_bias: bool = True
    show_progress: bool = False

    def __post_init__(self):
        validate_max_iteration(self.max_iteration)
        validate_learning_rate(self.learning_rate)


@dataclass
class LearnResult:
    """Learned filter with the mean absolute error of every sweep"""
    bias_filter: BiasFilter
    errors: List[float] = field(default_factory=list)

    @property
    def filter(self) -> ProductFilter:
        return self.bias_filter.filter

    @property
    def bias(self) -> Optional[NeuronValue]:
        return self.bias_filter.bias

    @property
    def iterations(self) -> int:
        return len(self.errors)


def learning_rate_at(rate: float, iteration: int, fixed: bool = LEARN_RATE_FIXED_DEFAULT) -> float:
    """Learning rate of an iteration, decaying with its square root unless fixed"""
    if rate is None or math.isnan(rate) or rate <= 0 or rate > 1:
        rate = LEARN_RATE_DEFAULT
    if iteration <= 1 or fixed:
        return rate
    return max(rate / math.sqrt(iteration), LEARN_RATE_MINIMUM)


def kernel_extent(large, small, rank: int) -> Tuple[int, bool]:
    """Square kernel extent and slide-by-one flag for a layer pair

    The extent is the floor of the geometric mean of the integer extent
    ratios over the first ``rank`` axes. A mean of one or less selects a
    sliding kernel of extent 3 (4 at rank 4).
    """
    product = 1
    for axis in range(rank):
        product *= large.size.extent(axis) // small.size.extent(axis)

    n = int(round(product ** (1.0 / rank))) if product > 0 else 0
    while n > 0 and n ** rank > product:
        n -= 1
    while (n + 1) ** rank <= product:
        n += 1

    if n <= 1:
        return (4 if rank >= MAX_RANK else 3), True
    return n, False


def _seed(initial: Optional[BiasFilter], kernel_size: Tuple[int, ...], slide_by_one: bool,
          zero: NeuronValue) -> Tuple[ProductFilter, NeuronValue]:
    seed = initial.filter if initial is not None else None
    if isinstance(seed, ProductFilter) and seed.kernel_size[:seed.rank] == kernel_size:
        filter = ProductFilter(seed.kernel, kernel_size, seed.weight, slide_by_one)
    else:
        count = int(np.prod(kernel_size))
        filter = ProductFilter([zero] * count, kernel_size, zero.unit(), slide_by_one)

    bias = initial.bias if initial is not None and initial.bias is not None else zero
    return filter, bias


def _sweep(rank: int, small, large, initial: Optional[BiasFilter], learn_bias: bool,
           learning_rate: float) -> Tuple[Optional[BiasFilter], float]:
    """One pass over the small layer, returning the updated filter and the mean error"""
    if rank > 1 and large.size.extent(rank - 1) <= 1:
        return _sweep(rank - 1, small, large, initial, learn_bias, learning_rate)

    if learning_rate is None or math.isnan(learning_rate) or learning_rate <= 0 or learning_rate > 1:
        learning_rate = LEARN_RATE_DEFAULT

    n, slide_by_one = kernel_extent(large, small, rank)
    zero = small.new_value()
    filter, bias = _seed(initial, (n,) * rank, slide_by_one, zero)
    activation = small.activation
    taps = filter.taps
    large_size = large.size

    sweep = [small.size.extent(axis) - 1 if axis < rank else 1 for axis in range(MAX_RANK)]
    total = 0.0
    count = 0
    for d in iter_coords(sweep):
        s = source_coord(d, filter, large_size, False)
        anchor = filter.fit_window(s, large)
        if not isinstance(anchor, tuple):
            continue

        predicted = filter.apply(s, large)
        if predicted is None:
            continue
        output = predicted.evaluate(activation)

        error = small.value_at(d).subtract(output)
        total += error.norm()
        count += 1
        error = error.multiply(predicted.derivative(activation))

        for tap, offset in enumerate(taps):
            point = tuple(a + o for a, o in zip(anchor, offset))
            if not large_size.contains(point):
                continue
            delta = error.multiply(large.value_at(point)).multiply(learning_rate)
            filter.kernel[tap] = filter.kernel[tap].add(delta)
        if learn_bias:
            bias = bias.add(error.multiply(learning_rate))

    mean_error = total / count if count > 0 else 0.0
    return BiasFilter(filter, bias if learn_bias else None), mean_error


def learn_filter(layer_a, layer_b, initial_filter: Optional[BiasFilter] = None,
                 config: Optional[LearningConfig] = None) -> Optional[LearnResult]:
    """Learn the filter mapping the larger layer of a pair onto the smaller one

    Args:
        layer_a: One layer of the pair; the larger one on a tie
        layer_b: The other layer
        initial_filter: Seed kernel and bias; used when its kernel shape matches
        config: Learning configuration

    Returns:
        LearnResult with the learned filter and the per-sweep errors, or None
        when a layer is absent. Installed layer filters are not modified.
    """
    if layer_a is None or layer_b is None:
        return None
    config = config if config is not None else LearningConfig()

    if len(layer_a) >= len(layer_b):
        large, small = layer_a, layer_b
    else:
        large, small = layer_b, layer_a

    max_iteration = config.max_iteration if config.max_iteration > 0 else LEARN_MAX_ITERATION_DEFAULT
    rank = max(large.rank, small.rank)
    logger.info(f"Learning filter {large.size} -> {small.size} over {max_iteration} iterations")

    iterations = range(max_iteration)
    if config.show_progress:
        iterations = tqdm(iterations, desc="Learning filter")

    bias_filter = initial_filter
    errors = []
    for iteration in iterations:
        rate = learning_rate_at(config.learning_rate, iteration, config.fixed_rate)
        bias_filter, error = _sweep(rank, small, large, bias_filter, config.learn_bias, rate)
        errors.append(error)

    if errors:
        logger.info(f"Filter learned: error {errors[0]:.6f} -> {errors[-1]:.6f}")
    return LearnResult(bias_filter, errors)


# Exact derivatives

@dataclass
class ValueRaster:
    """Per-coordinate mean derivatives over a region of the source layer"""
    values: List[NeuronValue]
    size: Size
    count: int


def _check_derivative(operation: str, source, destination, filter: Filter) -> ProductFilter:
    rank = max(source.rank, destination.rank)
    if rank <= 1 or filter.rank <= 1:
        raise DerivativeNotImplementedError(operation, rank=1, filter_kind=filter.kind.value)
    if filter.kind is not FilterKind.PRODUCT or not isinstance(filter, ProductFilter):
        raise DerivativeNotImplementedError(operation, rank=rank, filter_kind=type(filter).__name__)
    return filter


def _pairs(source, destination, filter: Filter, source_region: Optional[Region],
           destination_region: Optional[Region]):
    if source_region is not None and destination_region is not None:
        destination_region = None
    for d in destination.size.coords():
        s = source_coord(d, filter, source.size, destination.pad_zero)
        if not source.size.contains(s):
            continue
        if source_region is not None and not source_region.contains(s):
            continue
        if destination_region is not None and not destination_region.contains(d):
            continue
        yield s, d


def d_kernel(source, destination, filter: Optional[Filter] = None,
             source_region: Optional[Region] = None,
             destination_region: Optional[Region] = None) -> Optional[List[NeuronValue]]:
    """Mean derivative of the destination with respect to every kernel tap

    Raises:
        DerivativeNotImplementedError: for rank-1 passes and non-product filters
    """
    if source is None or destination is None:
        return None
    filter = filter if filter is not None else source.filter
    if filter is None:
        return None
    filter = _check_derivative("d_kernel", source, destination, filter)

    zero = destination.new_value()
    totals = [zero] * len(filter.kernel)
    count = 0
    for s, d in _pairs(source, destination, filter, source_region, destination_region):
        derivatives = filter.d_kernel(s, d, source, destination)
        if derivatives is None:
            continue
        totals = [t.add(v) for t, v in zip(totals, derivatives)]
        count += 1

    if count == 0:
        return None
    return [t.divide(count) for t in totals]


def d_value(source, destination, filter: Optional[Filter] = None,
            source_region: Optional[Region] = None,
            destination_region: Optional[Region] = None) -> Optional[ValueRaster]:
    """Mean derivative of the destination with respect to every source value

    Raises:
        DerivativeNotImplementedError: for rank-1 passes and non-product filters
    """
    if source is None or destination is None:
        return None
    filter = filter if filter is not None else source.filter
    if filter is None:
        return None
    filter = _check_derivative("d_value", source, destination, filter)

    size = source.size
    zero = source.new_value()
    totals = [zero] * size.length()
    counts = [0] * size.length()
    pairs = 0
    for s, d in _pairs(source, destination, filter, source_region, destination_region):
        derivatives = filter.d_value(s, d, source, destination)
        anchor = filter.fit_window(s, source)
        if derivatives is None or not isinstance(anchor, tuple):
            continue
        for value, offset in zip(derivatives, filter.taps):
            point = tuple(a + o for a, o in zip(anchor, offset))
            if not size.contains(point):
                continue
            index = size.index(point)
            totals[index] = totals[index].add(value)
            counts[index] += 1
        pairs += 1

    values = [t.divide(c) if c > 0 else t for t, c in zip(totals, counts)]

    region = source_region
    if region is None and destination_region is not None:
        region = prev_region(destination, source, filter, destination_region)
    if region is not None:
        region = region.clamp(size)
    if region is None:
        return ValueRaster(values, size, pairs)
    return ValueRaster([values[size.index(c)] for c in region.coords()], region.size, pairs)
