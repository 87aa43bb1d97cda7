"""
Neural Conv Custom Exceptions

Provides specific exception classes for the few conditions the convolution
engine refuses to handle quietly. Absent inputs (missing filter, missing
neighbour layer, empty region) are reported by returning None, not by
raising; the classes here cover configuration mistakes and code paths that
are deliberately left unimplemented.
"""

import math


class NeuralConvError(Exception):
    """Base exception class for all Neural Conv errors"""

    def __init__(self, message: str, error_code: str = "NC_GENERAL"):
        super().__init__(message)
        self.error_code = error_code
        self.message = message

    def __str__(self):
        return f"[{self.error_code}] {self.message}"


class ConfigurationError(NeuralConvError):
    """Raised when configuration is invalid"""

    def __init__(self, message: str, config_key: str = None,
                 config_value: str = None):
        self.config_key = config_key
        self.config_value = config_value

        full_message = f"Configuration error: {message}"

        if config_key:
            full_message += f" (key: {config_key}"
            if config_value:
                full_message += f", value: {config_value}"
            full_message += ")"

        super().__init__(full_message, "NC_CONFIG")


class LayerError(NeuralConvError):
    """Raised when a layer is used in a way its shape cannot support"""

    def __init__(self, message: str, layer_id: int = None, size: tuple = None):
        self.layer_id = layer_id
        self.size = size

        full_message = f"Layer error: {message}"

        details = []
        if layer_id is not None:
            details.append(f"id={layer_id}")
        if size is not None:
            details.append(f"size={size}")

        if details:
            full_message += f" ({', '.join(details)})"

        super().__init__(full_message, "NC_LAYER")


class FilterError(NeuralConvError):
    """Raised when a filter cannot be built from the given kernel"""

    def __init__(self, message: str, rank: int = None, kernel_size: tuple = None):
        self.rank = rank
        self.kernel_size = kernel_size

        full_message = f"Filter error: {message}"

        details = []
        if rank is not None:
            details.append(f"rank={rank}")
        if kernel_size is not None:
            details.append(f"kernel={kernel_size}")

        if details:
            full_message += f" ({', '.join(details)})"

        super().__init__(full_message, "NC_FILTER")


class DerivativeNotImplementedError(NeuralConvError):
    """Raised by exact-gradient paths that are intentionally missing

    The rank-1 kernel/value derivatives and derivatives through
    transposed-with-conv or non-product filters have no implementation.
    Callers must use the iterative filter learner instead.
    """

    def __init__(self, operation: str, rank: int = None, filter_kind: str = None):
        self.operation = operation
        self.rank = rank
        self.filter_kind = filter_kind

        full_message = f"Derivative '{operation}' is not implemented"

        details = []
        if rank is not None:
            details.append(f"rank={rank}")
        if filter_kind is not None:
            details.append(f"filter={filter_kind}")

        if details:
            full_message += f" ({', '.join(details)})"

        super().__init__(full_message, "NC_DERIVATIVE")


class VisualizationError(NeuralConvError):
    """Raised when visualization fails"""

    def __init__(self, message: str, plot_type: str = None):
        self.plot_type = plot_type

        full_message = f"Visualization error: {message}"
        if plot_type:
            full_message += f" (plot type: {plot_type})"

        super().__init__(full_message, "NC_VISUALIZATION")


# Validation helpers for caller-supplied configuration

def validate_channel(channel):
    """Validate a channel count"""
    if not isinstance(channel, int) or isinstance(channel, bool):
        raise ConfigurationError(
            f"Channel count must be an integer, got {type(channel).__name__}",
            config_key="channel"
        )

def validate_rank(rank):
    """Validate a layer or filter rank"""
    if not isinstance(rank, int) or isinstance(rank, bool):
        raise ConfigurationError(
            f"Rank must be an integer, got {type(rank).__name__}",
            config_key="rank"
        )

    if rank < 1 or rank > 4:
        raise ConfigurationError(
            f"Rank must be between 1 and 4, got {rank}",
            config_key="rank",
            config_value=str(rank)
        )


def validate_learning_rate(rate):
    """Validate a learning rate parameter"""
    if rate is None or math.isnan(rate) or rate <= 0 or rate > 1:
        raise ConfigurationError(
            f"Learning rate must be in (0, 1], got {rate}",
            config_key="learning_rate",
            config_value=str(rate)
        )


def validate_max_iteration(max_iteration):
    """Validate an iteration budget"""
    if not isinstance(max_iteration, int) or max_iteration < 0:
        raise ConfigurationError(
            f"Iteration count must be a non-negative integer, got {max_iteration}",
            config_key="max_iteration",
            config_value=str(max_iteration)
        )


__all__ = [
    'NeuralConvError',
    'ConfigurationError',
    'LayerError',
    'FilterError',
    'DerivativeNotImplementedError',
    'VisualizationError',
    'validate_channel',
    'validate_rank',
    'validate_learning_rate',
    'validate_max_iteration',
]
