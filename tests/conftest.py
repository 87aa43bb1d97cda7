"""Shared fixtures for the Neural Conv test suite."""

import os

os.environ.setdefault("MPLBACKEND", "Agg")

import numpy as np
import pytest

from neural_conv.core.activation import Identity
from neural_conv.core.geometry import Size
from neural_conv.core.layer import ConvLayer


@pytest.fixture
def identity():
    return Identity()


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def make_layer(identity):
    """Build a layer with identity activation filled from a flat list of scalars"""

    def _make(size, values=None, rank=None, pad_zero=False, activation=None, **kwargs):
        layer = ConvLayer(Size.of(size), activation=activation or identity,
                          rank=rank, pad_zero=pad_zero, **kwargs)
        if values is not None:
            layer.set_data(list(values))
        return layer

    return _make
