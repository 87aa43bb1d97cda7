"""
Neural Conv Field Values

NeuronValue is the numeric element stored in every neuron, kernel tap and
bias. It is a small immutable vector with one component per channel; the
convolution engine only relies on its field-like algebra (add, subtract,
multiply, divide, zero, unit) and on evaluating activation functions.
"""

from typing import Iterable, Union

import numpy as np

Scalar = Union[int, float]


class NeuronValue:
    """Immutable per-channel numeric value backed by a NumPy vector"""

    __slots__ = ('_data',)

    def __init__(self, data: Union[Scalar, Iterable[Scalar], np.ndarray]):
        array = np.array(data, dtype=np.float64).reshape(-1)
        if array.size == 0:
            array = np.zeros(1, dtype=np.float64)
        array.setflags(write=False)
        self._data = array

    @classmethod
    def zeros(cls, channel: int = 1) -> 'NeuronValue':
        return cls(np.zeros(max(channel, 1)))

    @classmethod
    def ones(cls, channel: int = 1) -> 'NeuronValue':
        return cls(np.ones(max(channel, 1)))

    @property
    def channel(self) -> int:
        return self._data.size

    @property
    def data(self) -> np.ndarray:
        return self._data

    # Field identities

    def zero(self) -> 'NeuronValue':
        return NeuronValue(np.zeros_like(self._data))

    def unit(self) -> 'NeuronValue':
        return NeuronValue(np.ones_like(self._data))

    def value_of(self, value: Union[Scalar, Iterable[Scalar]]) -> 'NeuronValue':
        """Value with this value's channel count, broadcasting a scalar"""
        array = np.array(value, dtype=np.float64).reshape(-1)
        if array.size == 1:
            return NeuronValue(np.full_like(self._data, array[0]))
        return NeuronValue(np.resize(array, self._data.shape))

    # Algebra

    def _operand(self, other):
        if isinstance(other, NeuronValue):
            return other._data
        return np.float64(other)

    def add(self, other) -> 'NeuronValue':
        return NeuronValue(self._data + self._operand(other))

    def subtract(self, other) -> 'NeuronValue':
        return NeuronValue(self._data - self._operand(other))

    def multiply(self, other) -> 'NeuronValue':
        return NeuronValue(self._data * self._operand(other))

    def divide(self, other) -> 'NeuronValue':
        operand = self._operand(other)
        with np.errstate(divide='ignore', invalid='ignore'):
            result = np.where(operand != 0, self._data / np.where(operand != 0, operand, 1), 0.0)
        return NeuronValue(result)

    def multiply_derivative(self, derivative: 'NeuronValue') -> 'NeuronValue':
        return self.multiply(derivative)

    def negative(self) -> 'NeuronValue':
        return NeuronValue(-self._data)

    def max(self, other: 'NeuronValue') -> 'NeuronValue':
        return NeuronValue(np.maximum(self._data, other._data))

    def can_invert(self) -> bool:
        return bool(np.all(self._data != 0))

    def norm(self) -> float:
        """Mean absolute component, used as a scalar error magnitude"""
        return float(np.mean(np.abs(self._data)))

    # Activation

    def evaluate(self, activation) -> 'NeuronValue':
        return activation.evaluate(self) if activation is not None else self

    def derivative(self, activation) -> 'NeuronValue':
        return activation.derivative(self) if activation is not None else self.unit()

    # Python protocol

    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __truediv__ = divide
    __neg__ = negative

    def __radd__(self, other):
        return self.add(other)

    def __rmul__(self, other):
        return self.multiply(other)

    def __eq__(self, other):
        if isinstance(other, NeuronValue):
            return np.array_equal(self._data, other._data)
        if isinstance(other, (int, float)) and self.channel == 1:
            return float(self._data[0]) == float(other)
        return NotImplemented

    __hash__ = None

    def is_close(self, other, tol: float = 1e-9) -> bool:
        other_data = other._data if isinstance(other, NeuronValue) else np.float64(other)
        return bool(np.allclose(self._data, other_data, atol=tol, rtol=0))

    def __float__(self):
        return float(self._data[0])

    def __repr__(self):
        if self.channel == 1:
            return f"NeuronValue({self._data[0]:g})"
        return f"NeuronValue({self._data.tolist()})"
