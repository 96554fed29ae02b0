"""TensorFlow / Keras functional-API generation."""

from typing import Optional

from ..grouping import NamedUnit
from ..layer_types import LayerKind
from .base import CodeGenerator, indexed_name, py_bool, quoted_name

_TRANSFORMER_BLOCK = [
    'def transformer_block(x, d_model, num_heads, d_ff, dropout, name):',
    '    attn = layers.MultiHeadAttention(',
    '        num_heads=num_heads, key_dim=d_model // num_heads, dropout=dropout, name=f"{name}_mha"',
    '    )(x, x)',
    '    x = layers.LayerNormalization(name=f"{name}_ln1")(x + attn)',
    '    ffn = layers.Dense(d_ff, activation="relu", name=f"{name}_ffn1")(x)',
    '    ffn = layers.Dense(d_model, name=f"{name}_ffn2")(ffn)',
    '    ffn = layers.Dropout(dropout, name=f"{name}_drop")(ffn)',
    '    return layers.LayerNormalization(name=f"{name}_ln2")(x + ffn)',
]

_RECURRENT_STACK = [
    'def recurrent_stack(x, cell, units, num_layers, bidirectional, name):',
    '    for i in range(num_layers):',
    '        rnn = cell(units, return_sequences=True, name=f"{name}_l{i}")',
    '        if bidirectional:',
    '            rnn = layers.Bidirectional(rnn, name=f"{name}_bi{i}")',
    '        x = rnn(x)',
    '    return x',
]


def input_spec(unit: Optional[NamedUnit]) -> str:
    """Arguments for ``tf.keras.Input`` matching what the first layer consumes."""
    if unit is None:
        return 'shape=(None,)'
    c = unit.config
    kind = unit.kind
    if kind == LayerKind.EMBEDDING:
        return 'shape=(None,), dtype="int32"'
    if kind == LayerKind.LINEAR:
        return f'shape=({c["input_dim"]},)'
    if kind == LayerKind.CONV2D:
        return f'shape=(224, 224, {c["in_channels"]})'
    if kind in (LayerKind.MAXPOOL2D, LayerKind.AVGPOOL2D):
        return 'shape=(224, 224, 3)'
    if kind in (LayerKind.LSTM, LayerKind.GRU):
        return f'shape=(None, {c["input_size"]})'
    if kind in (LayerKind.TRANSFORMER, LayerKind.ATTENTION):
        return f'shape=(None, {c["d_model"]})'
    if kind == LayerKind.BATCHNORM:
        return f'shape=({c["num_features"]},)'
    if kind == LayerKind.LAYERNORM:
        return f'shape=(None, {c["normalized_shape"]})'
    return 'shape=(None,)'


def layer_stmt(unit: NamedUnit, name: str) -> str:
    """One assignment to ``x``; ``name`` is the already-quoted layer name."""
    c = unit.config
    kind = unit.kind

    if kind == LayerKind.EMBEDDING:
        return f'x = layers.Embedding({c["vocab_size"]}, {c["embedding_dim"]}, name={name})(x)'
    if kind == LayerKind.LINEAR:
        return f'x = layers.Dense({c["output_dim"]}, use_bias={py_bool(c["use_bias"])}, name={name})(x)'
    if kind == LayerKind.CONV2D:
        return (f'x = layers.Conv2D({c["out_channels"]}, {c["kernel_size"]}, padding="same", '
                f'use_bias={py_bool(c["use_bias"])}, name={name})(x)')
    if kind in (LayerKind.LSTM, LayerKind.GRU):
        cell = 'layers.LSTM' if kind == LayerKind.LSTM else 'layers.GRU'
        return (f'x = recurrent_stack(x, {cell}, {c["hidden_size"]}, num_layers={c["num_layers"]}, '
                f'bidirectional={py_bool(c["bidirectional"])}, name={name})')
    if kind == LayerKind.TRANSFORMER:
        return (f'x = transformer_block(x, d_model={c["d_model"]}, num_heads={c["num_heads"]}, '
                f'd_ff={c["d_ff"]}, dropout={c["dropout"]}, name={name})')
    if kind == LayerKind.ATTENTION:
        key_dim = c["d_model"] // c["num_heads"]
        return (f'x = layers.MultiHeadAttention(num_heads={c["num_heads"]}, key_dim={key_dim}, '
                f'name={name})(x, x)')
    if kind == LayerKind.BATCHNORM:
        return f'x = layers.BatchNormalization(name={name})(x)'
    if kind == LayerKind.LAYERNORM:
        return f'x = layers.LayerNormalization(name={name})(x)'
    if kind == LayerKind.DROPOUT:
        return f'x = layers.Dropout({c["rate"]}, name={name})(x)'
    if kind == LayerKind.MAXPOOL2D:
        return f'x = layers.MaxPooling2D(pool_size={c["kernel_size"]}, name={name})(x)'
    if kind == LayerKind.AVGPOOL2D:
        return f'x = layers.AveragePooling2D(pool_size={c["kernel_size"]}, name={name})(x)'
    if kind == LayerKind.RELU:
        return f'x = layers.ReLU(name={name})(x)'
    if kind == LayerKind.SOFTMAX:
        return f'x = layers.Softmax(name={name})(x)'
    raise ValueError(f"No Keras mapping for {kind!r}")


class TensorFlowCodeGenerator(CodeGenerator):
    """Generates a Keras functional model builder."""

    framework = 'tensorflow'
    display_name = 'TensorFlow'

    def generate(self) -> str:
        lines = self.header() + [
            'import tensorflow as tf',
            'from tensorflow.keras import layers',
            '',
            '',
        ]
        kinds = self.kinds()
        if LayerKind.TRANSFORMER in kinds:
            lines.extend(_TRANSFORMER_BLOCK + ['', ''])
        if kinds & {LayerKind.LSTM, LayerKind.GRU}:
            lines.extend(_RECURRENT_STACK + ['', ''])

        first = self.units[0] if self.units else None
        lines.extend([
            'def build_model():',
            f'    inputs = tf.keras.Input({input_spec(first)})',
            '    x = inputs',
        ])
        for unit in self.units:
            if unit.repeated:
                lines.append(f'    for i in range({unit.count}):')
                lines.append(f'        {layer_stmt(unit, indexed_name(unit.name))}')
            else:
                lines.append(f'    {layer_stmt(unit, quoted_name(unit.name))}')
        lines.extend([
            '    return tf.keras.Model(inputs, x, name="layercal_model")',
            '',
            '',
            'model = build_model()',
            'model.summary()',
        ])
        return '\n'.join(lines) + '\n'
