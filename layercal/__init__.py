"""
LayerCal - parameter, FLOPs and memory calculator for neural network layer
stacks, with PyTorch, TensorFlow and JAX code export.
"""

__version__ = "1.0.0"

from .aggregate import LayerStats, ModelSummary, summarize
from .codegen import FRAMEWORKS, generate_code
from .errors import LayerCalError, ModelError, SettingsError, UnknownFrameworkError
from .formatting import format_bytes, format_model_size, format_number
from .grouping import Group, NamedUnit, annotate, build_units, expand_groups, group_layers
from .layer_types import (
    LayerKind,
    LayerTypeDescriptor,
    ShapeContext,
    default_config,
    flops,
    get_layer_types,
    parameter_count,
)
from .memory import calculate_memory, model_size_mb
from .model import LayerInstance, Model

__all__ = [
    'FRAMEWORKS',
    'Group',
    'LayerCalError',
    'LayerInstance',
    'LayerKind',
    'LayerStats',
    'LayerTypeDescriptor',
    'Model',
    'ModelError',
    'ModelSummary',
    'NamedUnit',
    'SettingsError',
    'ShapeContext',
    'UnknownFrameworkError',
    'annotate',
    'build_units',
    'calculate_memory',
    'default_config',
    'expand_groups',
    'flops',
    'format_bytes',
    'format_model_size',
    'format_number',
    'generate_code',
    'get_layer_types',
    'group_layers',
    'model_size_mb',
    'parameter_count',
    'summarize',
    '__version__',
]
