"""
Layer type registry.

Every supported layer kind carries its configuration schema, its default
configuration and two formulas: one for the trainable parameter count and one
for the forward-pass FLOPs. The formulas never depend on the display language
or theme; ``get_layer_types`` only decorates them with display metadata.

FLOPs follow the usual reporting convention: a multiply-add counts as 2,
bias adds and activations are not counted, normalization layers count a fixed
number of element-wise ops per value.
"""

from dataclasses import dataclass, field, fields as dataclass_fields, replace
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .translations import get_translations


class LayerKind(str, Enum):
    """The closed set of layer kinds the calculator understands."""
    EMBEDDING = 'embedding'
    LINEAR = 'linear'
    CONV2D = 'conv2d'
    LSTM = 'lstm'
    GRU = 'gru'
    TRANSFORMER = 'transformer'
    ATTENTION = 'attention'
    BATCHNORM = 'batchnorm'
    LAYERNORM = 'layernorm'
    DROPOUT = 'dropout'
    MAXPOOL2D = 'maxpool2d'
    AVGPOOL2D = 'avgpool2d'
    RELU = 'relu'
    SOFTMAX = 'softmax'


# Layers after which activations are image-like (N, C, H, W) ...
SPATIAL_KINDS = frozenset({LayerKind.CONV2D, LayerKind.MAXPOOL2D, LayerKind.AVGPOOL2D})
# ... and layers after which they are flat feature vectors.
FLAT_KINDS = frozenset({
    LayerKind.EMBEDDING, LayerKind.LINEAR, LayerKind.LSTM, LayerKind.GRU,
    LayerKind.TRANSFORMER, LayerKind.ATTENTION,
})
NORM_KINDS = frozenset({LayerKind.BATCHNORM, LayerKind.LAYERNORM})


class FieldType(str, Enum):
    INTEGER = 'integer'
    REAL = 'real'
    BOOLEAN = 'boolean'


@dataclass(frozen=True)
class FieldSpec:
    """One editable configuration field of a layer kind."""
    key: str
    type: FieldType
    options: Optional[Tuple[int, ...]] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    label: str = ''

    def to_dict(self) -> Dict[str, Any]:
        data = {'key': self.key, 'type': self.type.value, 'label': self.label}
        if self.options is not None:
            data['options'] = list(self.options)
        for name in ('min', 'max', 'step'):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass(frozen=True)
class ShapeContext:
    """
    Shape information that is not stored on a layer but needed for FLOPs.

    Any field left as None falls back to the default of the kind being
    evaluated (see ``DEFAULT_CONTEXT``).

    ``input_size`` is the side of the square input image of Conv2D and the
    pooling layers. ``spatial_size`` is unrelated to it: it is the number of
    positions (H*W) BatchNorm normalizes per feature and is read by nothing
    else. ``seq_len`` feeds the recurrent, attention and LayerNorm counts,
    ``batch_size`` the two norms and ``channels`` the pools.
    """
    seq_len: Optional[int] = None
    input_size: Optional[int] = None
    batch_size: Optional[int] = None
    channels: Optional[int] = None
    spatial_size: Optional[int] = None


DEFAULT_CONTEXT: Dict[LayerKind, ShapeContext] = {
    LayerKind.CONV2D: ShapeContext(input_size=224),
    LayerKind.LSTM: ShapeContext(seq_len=128),
    LayerKind.GRU: ShapeContext(seq_len=128),
    LayerKind.TRANSFORMER: ShapeContext(seq_len=512),
    LayerKind.ATTENTION: ShapeContext(seq_len=512),
    LayerKind.BATCHNORM: ShapeContext(batch_size=32, spatial_size=1),
    LayerKind.LAYERNORM: ShapeContext(batch_size=32, seq_len=512),
    LayerKind.MAXPOOL2D: ShapeContext(channels=64, input_size=224),
    LayerKind.AVGPOOL2D: ShapeContext(channels=64, input_size=224),
}


def resolve_context(kind: LayerKind, context: Optional[ShapeContext] = None) -> ShapeContext:
    """Fill the unset fields of ``context`` with the defaults for ``kind``."""
    defaults = DEFAULT_CONTEXT.get(kind, ShapeContext())
    if context is None:
        return defaults
    overrides = {f.name: getattr(context, f.name) for f in dataclass_fields(context)
                 if getattr(context, f.name) is not None}
    return replace(defaults, **overrides)


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------

def _attention_params(d_model):
    # Q, K, V and output projections, each with bias
    return 4 * (d_model * d_model + d_model)


def _attention_flops(d_model, seq_len):
    qkv_proj = 3 * 2 * seq_len * d_model * d_model
    attn_scores = 2 * seq_len * seq_len * d_model
    attn_output = 2 * seq_len * d_model * d_model
    return qkv_proj + attn_scores + attn_output


def _recurrent_params(config, gates):
    direction = 2 if config['bidirectional'] else 1
    hidden = config['hidden_size']
    total = 0
    for layer in range(config['num_layers']):
        # Stacked layers consume the concatenated output of both directions
        input_dim = config['input_size'] if layer == 0 else hidden * direction
        per_direction = gates * (input_dim * hidden + hidden * hidden + 2 * hidden)
        total += per_direction * direction
    return total


def _recurrent_flops(config, gates, seq_len):
    direction = 2 if config['bidirectional'] else 1
    hidden = config['hidden_size']
    total = 0
    for layer in range(config['num_layers']):
        input_dim = config['input_size'] if layer == 0 else hidden * direction
        per_step = gates * 2 * (input_dim * hidden + hidden * hidden)
        total += per_step * seq_len * direction
    return total


def _pool_flops(config, ctx):
    kernel = config['kernel_size']
    output_size = ctx.input_size // kernel
    return ctx.channels * output_size * output_size * kernel * kernel


def _zero(config, ctx=None):
    return 0


def _transformer_params(config):
    d, d_ff = config['d_model'], config['d_ff']
    ffn = d * d_ff + d_ff + d_ff * d + d
    layer_norms = 2 * (d * 2)
    return _attention_params(d) + ffn + layer_norms


def _transformer_flops(config, ctx):
    d, d_ff = config['d_model'], config['d_ff']
    ffn = ctx.seq_len * (2 * d * d_ff + 2 * d_ff * d)
    return _attention_flops(d, ctx.seq_len) + ffn


def _conv2d_flops(config, ctx):
    # "same" padding: the output keeps the input's spatial size
    output_size = ctx.input_size
    k = config['kernel_size']
    return 2 * config['in_channels'] * config['out_channels'] * k * k * output_size * output_size


@dataclass(frozen=True)
class _Formula:
    calculate: Callable[[Mapping], int]
    calculate_flops: Callable[[Mapping, ShapeContext], int]


_FORMULAS: Dict[LayerKind, _Formula] = {
    LayerKind.EMBEDDING: _Formula(
        lambda c: c['vocab_size'] * c['embedding_dim'],
        _zero,
    ),
    LayerKind.LINEAR: _Formula(
        lambda c: c['input_dim'] * c['output_dim'] + (c['output_dim'] if c['use_bias'] else 0),
        lambda c, ctx: 2 * c['input_dim'] * c['output_dim'],
    ),
    LayerKind.CONV2D: _Formula(
        lambda c: (c['in_channels'] * c['out_channels'] * c['kernel_size'] * c['kernel_size']
                   + (c['out_channels'] if c['use_bias'] else 0)),
        _conv2d_flops,
    ),
    LayerKind.LSTM: _Formula(
        lambda c: _recurrent_params(c, gates=4),
        lambda c, ctx: _recurrent_flops(c, 4, ctx.seq_len),
    ),
    LayerKind.GRU: _Formula(
        lambda c: _recurrent_params(c, gates=3),
        lambda c, ctx: _recurrent_flops(c, 3, ctx.seq_len),
    ),
    LayerKind.TRANSFORMER: _Formula(_transformer_params, _transformer_flops),
    LayerKind.ATTENTION: _Formula(
        lambda c: _attention_params(c['d_model']),
        lambda c, ctx: _attention_flops(c['d_model'], ctx.seq_len),
    ),
    LayerKind.BATCHNORM: _Formula(
        lambda c: c['num_features'] * 2,
        lambda c, ctx: c['num_features'] * ctx.batch_size * ctx.spatial_size * 4,
    ),
    LayerKind.LAYERNORM: _Formula(
        lambda c: c['normalized_shape'] * 2,
        lambda c, ctx: c['normalized_shape'] * ctx.batch_size * ctx.seq_len * 5,
    ),
    LayerKind.DROPOUT: _Formula(_zero, _zero),
    LayerKind.MAXPOOL2D: _Formula(_zero, _pool_flops),
    LayerKind.AVGPOOL2D: _Formula(_zero, _pool_flops),
    LayerKind.RELU: _Formula(_zero, _zero),
    LayerKind.SOFTMAX: _Formula(_zero, _zero),
}

_missing = set(LayerKind) - set(_FORMULAS)
if _missing:
    raise RuntimeError(f"No formulas registered for {sorted(k.value for k in _missing)}")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

_INT = FieldType.INTEGER
_BOOL = FieldType.BOOLEAN
_REAL = FieldType.REAL

_D_MODEL = FieldSpec('d_model', _INT, options=(256, 512, 768, 1024))
_NUM_HEADS = FieldSpec('num_heads', _INT, options=(4, 8, 12, 16))
_POOL_KERNEL = FieldSpec('kernel_size', _INT, options=(2, 3, 4))
_RECURRENT_FIELDS = (
    FieldSpec('input_size', _INT, options=(64, 128, 256, 512, 768)),
    FieldSpec('hidden_size', _INT, options=(128, 256, 512, 768, 1024)),
    FieldSpec('num_layers', _INT, options=(1, 2, 3, 4)),
    FieldSpec('bidirectional', _BOOL),
)
_RECURRENT_DEFAULTS = {'input_size': 128, 'hidden_size': 256, 'num_layers': 1, 'bidirectional': False}

_SCHEMAS: Dict[LayerKind, Tuple[Tuple[FieldSpec, ...], Dict[str, Any]]] = {
    LayerKind.EMBEDDING: (
        (FieldSpec('vocab_size', _INT, options=(5000, 10000, 30000, 50000)),
         FieldSpec('embedding_dim', _INT, options=(64, 128, 256, 512, 768, 1024))),
        {'vocab_size': 10000, 'embedding_dim': 128},
    ),
    LayerKind.LINEAR: (
        (FieldSpec('input_dim', _INT, options=(64, 128, 256, 512, 768, 1024, 2048)),
         FieldSpec('output_dim', _INT, options=(64, 128, 256, 512, 768, 1024, 2048)),
         FieldSpec('use_bias', _BOOL)),
        {'input_dim': 512, 'output_dim': 256, 'use_bias': True},
    ),
    LayerKind.CONV2D: (
        (FieldSpec('in_channels', _INT, options=(1, 3, 16, 32, 64, 128, 256)),
         FieldSpec('out_channels', _INT, options=(16, 32, 64, 128, 256, 512)),
         FieldSpec('kernel_size', _INT, options=(1, 3, 5, 7)),
         FieldSpec('use_bias', _BOOL)),
        {'in_channels': 3, 'out_channels': 64, 'kernel_size': 3, 'use_bias': True},
    ),
    LayerKind.LSTM: (_RECURRENT_FIELDS, _RECURRENT_DEFAULTS),
    LayerKind.GRU: (_RECURRENT_FIELDS, _RECURRENT_DEFAULTS),
    LayerKind.TRANSFORMER: (
        (_D_MODEL, _NUM_HEADS,
         FieldSpec('d_ff', _INT, options=(1024, 2048, 3072, 4096)),
         FieldSpec('dropout', _REAL, min=0, max=1, step=0.1)),
        {'d_model': 512, 'num_heads': 8, 'd_ff': 2048, 'dropout': 0.1},
    ),
    LayerKind.ATTENTION: ((_D_MODEL, _NUM_HEADS), {'d_model': 512, 'num_heads': 8}),
    LayerKind.BATCHNORM: (
        (FieldSpec('num_features', _INT, options=(64, 128, 256, 512, 768, 1024)),),
        {'num_features': 128},
    ),
    LayerKind.LAYERNORM: (
        (FieldSpec('normalized_shape', _INT, options=(128, 256, 512, 768, 1024)),),
        {'normalized_shape': 512},
    ),
    LayerKind.DROPOUT: ((FieldSpec('rate', _REAL, min=0, max=1, step=0.1),), {'rate': 0.1}),
    LayerKind.MAXPOOL2D: ((_POOL_KERNEL,), {'kernel_size': 2}),
    LayerKind.AVGPOOL2D: ((_POOL_KERNEL,), {'kernel_size': 2}),
    LayerKind.RELU: ((), {}),
    LayerKind.SOFTMAX: ((), {}),
}

# Icon plus (light, dark) colour tokens for the palette
_APPEARANCE: Dict[LayerKind, Tuple[str, str, str]] = {
    LayerKind.EMBEDDING: ('📚', 'bg-purple-100 border-purple-300', 'bg-purple-900/30 border-purple-700'),
    LayerKind.LINEAR: ('🔗', 'bg-blue-100 border-blue-300', 'bg-blue-900/30 border-blue-700'),
    LayerKind.CONV2D: ('🖼️', 'bg-green-100 border-green-300', 'bg-green-900/30 border-green-700'),
    LayerKind.LSTM: ('🔄', 'bg-orange-100 border-orange-300', 'bg-orange-900/30 border-orange-700'),
    LayerKind.GRU: ('🔁', 'bg-red-100 border-red-300', 'bg-red-900/30 border-red-700'),
    LayerKind.TRANSFORMER: ('⚡', 'bg-pink-100 border-pink-300', 'bg-pink-900/30 border-pink-700'),
    LayerKind.ATTENTION: ('👁️', 'bg-fuchsia-100 border-fuchsia-300', 'bg-fuchsia-900/30 border-fuchsia-700'),
    LayerKind.BATCHNORM: ('📊', 'bg-yellow-100 border-yellow-300', 'bg-yellow-900/30 border-yellow-700'),
    LayerKind.LAYERNORM: ('🎯', 'bg-indigo-100 border-indigo-300', 'bg-indigo-900/30 border-indigo-700'),
    LayerKind.DROPOUT: ('💧', 'bg-gray-100 border-gray-300', 'bg-gray-800 border-gray-600'),
    LayerKind.MAXPOOL2D: ('⬇️', 'bg-teal-100 border-teal-300', 'bg-teal-900/30 border-teal-700'),
    LayerKind.AVGPOOL2D: ('📉', 'bg-cyan-100 border-cyan-300', 'bg-cyan-900/30 border-cyan-700'),
    LayerKind.RELU: ('🔥', 'bg-lime-100 border-lime-300', 'bg-lime-900/30 border-lime-700'),
    LayerKind.SOFTMAX: ('🎲', 'bg-amber-100 border-amber-300', 'bg-amber-900/30 border-amber-700'),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def schema_for(kind) -> Tuple[FieldSpec, ...]:
    """Return the ordered field schema of a kind."""
    return _SCHEMAS[LayerKind(kind)][0]


def default_config(kind) -> Dict[str, Any]:
    """Return a fresh copy of the default configuration of a kind."""
    return dict(_SCHEMAS[LayerKind(kind)][1])


def parameter_count(kind, config: Mapping) -> int:
    """Trainable parameters of one layer of ``kind`` configured with ``config``."""
    return int(_FORMULAS[LayerKind(kind)].calculate(config))


def flops(kind, config: Mapping, context: Optional[ShapeContext] = None) -> int:
    """Forward-pass FLOPs of one layer, using per-kind defaults for missing context."""
    kind = LayerKind(kind)
    return int(_FORMULAS[kind].calculate_flops(config, resolve_context(kind, context)))


@dataclass(frozen=True)
class LayerTypeDescriptor:
    """A layer kind as shown in the palette: display metadata plus formulas."""
    kind: LayerKind
    name: str
    description: str
    icon: str
    color: str
    fields: Tuple[FieldSpec, ...] = field(default_factory=tuple)

    @property
    def default_params(self) -> Dict[str, Any]:
        return default_config(self.kind)

    def calculate(self, config: Mapping) -> int:
        return parameter_count(self.kind, config)

    def calculate_flops(self, config: Mapping, context: Optional[ShapeContext] = None) -> int:
        return flops(self.kind, config, context)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
            'color': self.color,
            'defaultParams': self.default_params,
            'fields': [f.to_dict() for f in self.fields],
        }


@lru_cache(maxsize=None)
def get_layer_types(language: str = 'en', dark_mode: bool = False) -> Mapping[LayerKind, LayerTypeDescriptor]:
    """
    Build the descriptor table for a display language and theme.

    The result is cached per (language, dark_mode) and returned as a read-only
    mapping, so callers can hold on to it between requests.
    """
    strings = get_translations(language)
    labels = strings['fields']
    descriptors = {}
    for kind in LayerKind:
        name, description = strings['layers'][kind.value]
        icon, light, dark = _APPEARANCE[kind]
        descriptors[kind] = LayerTypeDescriptor(
            kind=kind,
            name=name,
            description=description,
            icon=icon,
            color=dark if dark_mode else light,
            fields=tuple(replace(f, label=labels.get(f.key, f.key)) for f in schema_for(kind)),
        )
    return MappingProxyType(descriptors)
