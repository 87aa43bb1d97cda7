"""
Neural Conv Activation Functions

Activation references attached to layers. Each activation maps a
NeuronValue to a NeuronValue componentwise (softmax works across the
channels) and exposes its derivative evaluated at a pre-activation value.
"""

from abc import ABC, abstractmethod

import numpy as np

from .value import NeuronValue


class Activation(ABC):
    """Abstract activation function over neuron values"""

    def evaluate(self, value: NeuronValue) -> NeuronValue:
        return NeuronValue(self._evaluate(value.data))

    def derivative(self, value: NeuronValue) -> NeuronValue:
        return NeuronValue(self._derivative(value.data))

    @abstractmethod
    def _evaluate(self, x: np.ndarray) -> np.ndarray:
        pass

    @abstractmethod
    def _derivative(self, x: np.ndarray) -> np.ndarray:
        pass

    def __repr__(self):
        return f"{type(self).__name__}()"


class Identity(Activation):
    """f(x) = x"""

    def _evaluate(self, x):
        return x.copy()

    def _derivative(self, x):
        return np.ones_like(x)


class ReLU(Activation):
    """Rectifier clamped below at ``min`` and, when given, above at ``max``"""

    def __init__(self, min: float = 0.0, max: float = None):
        self.min = min
        self.max = max

    def is_norm(self) -> bool:
        return self.min == 0 and self.max == 1

    def _evaluate(self, x):
        upper = np.inf if self.max is None else self.max
        return np.clip(x, self.min, upper)

    def _derivative(self, x):
        outside = x < self.min
        if self.max is not None:
            outside = outside | (x > self.max)
        return np.where(outside, 0.0, 1.0)

    def __repr__(self):
        return f"ReLU(min={self.min}, max={self.max})"


class Logistic(Activation):
    """Generalised logistic curve between ``min`` and ``max``"""

    def __init__(self, min: float = 0.0, max: float = 1.0, mid: float = 0.0, slope: float = 1.0):
        self.min = min
        self.max = max
        self.mid = mid
        self.slope = slope

    def _evaluate(self, x):
        return (self.max - self.min) / (1.0 + np.exp(self.slope * (self.mid - x))) + self.min

    def _derivative(self, x):
        v = self._evaluate(x)
        return self.slope * (v - self.min) * (self.max - v) / (self.max - self.min)


class Tanh(Activation):
    """Hyperbolic tangent rescaled to ``(min, max)``"""

    def __init__(self, min: float = -1.0, max: float = 1.0, mid: float = 0.0, slope: float = 1.0):
        self.min = min
        self.max = max
        self.mid = mid
        self.slope = slope

    def _evaluate(self, x):
        return (self.max - self.min) / (1.0 + np.exp(2 * self.slope * (self.mid - x))) + self.min

    def _derivative(self, x):
        v = self._evaluate(x)
        return 2 * self.slope * (v - self.min) * (self.max - v) / (self.max - self.min)


class Softmax(Activation):
    """Softmax across the channels of a value"""

    def _evaluate(self, x):
        shifted = np.exp(x - np.max(x))
        return shifted / np.sum(shifted)

    def _derivative(self, x):
        s = self._evaluate(x)
        return s * (1.0 - s)


def default_activation(channel: int) -> Activation:
    """Canonical activation of a convolutional layer with the given channel count

    Channel values are kept in the normalised range [0, 1].
    """
    if channel <= 0:
        return None
    return ReLU(0.0, 1.0)
