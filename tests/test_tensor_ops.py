"""Tests for layer and tensor conversions, including a cross-check against torch convolutions."""

import numpy as np
import pytest
import torch
import torch.nn.functional as F

from neural_conv.core.filters import ProductFilter
from neural_conv.core.forward import forward
from neural_conv.core.geometry import Size
from neural_conv.core.layer import ConvLayer
from neural_conv.utils.tensor_ops import (
    kernel_to_tensor,
    layer_to_numpy,
    layer_to_tensor,
    numpy_to_layer,
    tensor_to_layer,
    tensor_to_numpy,
)


class TestConversions:
    def test_layer_to_numpy_shape(self, make_layer):
        layer = make_layer([3, 2], range(6))
        array = layer_to_numpy(layer)
        assert array.shape == (1, 2, 3)
        assert array[0, 1, 2] == 5.0

    def test_rank_four_shape(self, make_layer):
        layer = make_layer([2, 1, 1, 3], range(6), rank=4)
        assert layer_to_numpy(layer).shape == (1, 3, 1, 1, 2)

    def test_numpy_round_trip(self, make_layer, rng):
        array = rng.random((2, 3, 4))
        layer = ConvLayer(Size(4, 3), channel=2)
        numpy_to_layer(array, layer)
        np.testing.assert_allclose(layer_to_numpy(layer), array)

    def test_tensor_to_new_layer(self):
        tensor = torch.arange(6, dtype=torch.float64).reshape(1, 2, 3)
        layer = tensor_to_layer(tensor)
        assert layer.rank == 2
        assert layer.size == Size(3, 2)
        assert float(layer.get(2, 1).value) == 5.0
        assert torch.equal(layer_to_tensor(layer), tensor)

    def test_tensor_to_numpy(self):
        tensor = torch.ones(2, 2, requires_grad=True)
        assert tensor_to_numpy(tensor).shape == (2, 2)

    def test_kernel_to_tensor(self):
        f = ProductFilter.create([[1, 2, 3], [4, 5, 6]], weight=2.0)
        weight = kernel_to_tensor(f)
        assert weight.shape == (1, 1, 2, 3)
        assert weight[0, 0, 1, 0].item() == 8.0


class TestTorchCrossCheck:
    def test_block_convolution_2d(self, make_layer, rng):
        source = make_layer([6, 4], rng.random(24))
        destination = make_layer([3, 2])
        f = ProductFilter.create(rng.random((2, 2)))
        forward(source, destination, f)

        expected = F.conv2d(layer_to_tensor(source).unsqueeze(0), kernel_to_tensor(f), stride=2)[0]
        assert torch.allclose(layer_to_tensor(destination), expected)

    def test_sliding_convolution_1d(self, make_layer, rng):
        source = make_layer([8], rng.random(8))
        destination = make_layer([8])
        f = ProductFilter.create(rng.random(3), slide_by_one=True)
        forward(source, destination, f)

        expected = F.conv1d(layer_to_tensor(source).unsqueeze(0), kernel_to_tensor(f))[0]
        actual = layer_to_tensor(destination)
        assert torch.allclose(actual[:, :6], expected)
        # anchors past the last full window are shifted back inside the layer
        assert torch.allclose(actual[:, 6:], expected[:, -1:].expand(1, 2))

    def test_strided_convolution_3d(self, make_layer, rng):
        source = make_layer([4, 4, 4], rng.random(64))
        destination = make_layer([2, 2, 2])
        f = ProductFilter.create(rng.random((2, 2, 2)), weight=0.5)
        forward(source, destination, f)

        expected = F.conv3d(layer_to_tensor(source).unsqueeze(0), kernel_to_tensor(f), stride=2)[0]
        assert torch.allclose(layer_to_tensor(destination), expected)
        assert pytest.approx(expected.sum().item()) == sum(float(v) for v in destination.get_data())
