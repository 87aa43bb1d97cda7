"""Tests for error types, validation helpers and logging setup."""

import logging

import pytest

from neural_conv.exceptions import (
    ConfigurationError,
    DerivativeNotImplementedError,
    LayerError,
    NeuralConvError,
    validate_channel,
    validate_learning_rate,
    validate_max_iteration,
    validate_rank,
)
from neural_conv.utils.logging import setup_logging


def test_error_format():
    error = ConfigurationError("bad value", config_key="rank", config_value="7")
    assert str(error) == "[NC_CONFIG] Configuration error: bad value (key: rank, value: 7)"
    assert isinstance(error, NeuralConvError)


def test_derivative_error_details():
    error = DerivativeNotImplementedError("d_kernel", rank=1, filter_kind="product")
    assert error.error_code == "NC_DERIVATIVE"
    assert "rank=1" in str(error)


def test_layer_error_details():
    assert "id=3" in str(LayerError("unlinked", layer_id=3))


@pytest.mark.parametrize("call, value", [
    (validate_rank, 0),
    (validate_rank, 5),
    (validate_rank, 2.0),
    (validate_channel, "3"),
    (validate_learning_rate, 1.5),
    (validate_learning_rate, float("nan")),
    (validate_max_iteration, -3),
])
def test_validation_rejects(call, value):
    with pytest.raises(ConfigurationError):
        call(value)


def test_validation_accepts():
    validate_rank(4)
    validate_channel(2)
    validate_learning_rate(1.0)
    validate_max_iteration(0)


def test_setup_logging(tmp_path):
    log_file = tmp_path / "run.log"
    logger = setup_logging("debug", log_file=str(log_file))
    assert logger.name == "neural_conv"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    logging.getLogger("neural_conv.core").debug("hello")
    for handler in logger.handlers:
        handler.flush()
    assert "hello" in log_file.read_text()
    setup_logging(logging.WARNING)
    assert len(logger.handlers) == 1
