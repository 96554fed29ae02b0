"""JAX generation using Flax linen modules."""

from ..grouping import NamedUnit
from ..layer_types import LayerKind
from .base import CodeGenerator, indexed_name, py_bool, quoted_name

_TRANSFORMER_BLOCK = [
    'class TransformerBlock(nn.Module):',
    '    d_model: int',
    '    num_heads: int',
    '    d_ff: int',
    '    dropout: float',
    '',
    '    @nn.compact',
    '    def __call__(self, x, train: bool = False):',
    '        attn = nn.MultiHeadDotProductAttention(num_heads=self.num_heads, qkv_features=self.d_model)(x)',
    '        attn = nn.Dropout(rate=self.dropout, deterministic=not train)(attn)',
    '        x = nn.LayerNorm()(x + attn)',
    '        ffn = nn.relu(nn.Dense(self.d_ff)(x))',
    '        ffn = nn.Dense(self.d_model)(ffn)',
    '        ffn = nn.Dropout(rate=self.dropout, deterministic=not train)(ffn)',
    '        return nn.LayerNorm()(x + ffn)',
]

_RECURRENT_STACK = [
    'class RecurrentStack(nn.Module):',
    '    cell: str',
    '    hidden_size: int',
    '    num_layers: int',
    '    bidirectional: bool',
    '',
    '    @nn.compact',
    '    def __call__(self, x):',
    '        cell_type = nn.OptimizedLSTMCell if self.cell == "lstm" else nn.GRUCell',
    '        for _ in range(self.num_layers):',
    '            forward = nn.RNN(cell_type(features=self.hidden_size))',
    '            if self.bidirectional:',
    '                backward = nn.RNN(cell_type(features=self.hidden_size), reverse=True, keep_order=True)',
    '                x = nn.Bidirectional(forward, backward)(x)',
    '            else:',
    '                x = forward(x)',
    '        return x',
]


def layer_stmt(unit: NamedUnit, name: str) -> str:
    """One assignment to ``x``; ``name`` is the already-quoted module name."""
    c = unit.config
    kind = unit.kind

    if kind == LayerKind.EMBEDDING:
        return f'x = nn.Embed(num_embeddings={c["vocab_size"]}, features={c["embedding_dim"]}, name={name})(x)'
    if kind == LayerKind.LINEAR:
        return f'x = nn.Dense({c["output_dim"]}, use_bias={py_bool(c["use_bias"])}, name={name})(x)'
    if kind == LayerKind.CONV2D:
        k = c["kernel_size"]
        return (f'x = nn.Conv(features={c["out_channels"]}, kernel_size=({k}, {k}), padding="SAME", '
                f'use_bias={py_bool(c["use_bias"])}, name={name})(x)')
    if kind in (LayerKind.LSTM, LayerKind.GRU):
        return (f'x = RecurrentStack(cell="{kind.value}", hidden_size={c["hidden_size"]}, '
                f'num_layers={c["num_layers"]}, bidirectional={py_bool(c["bidirectional"])}, name={name})(x)')
    if kind == LayerKind.TRANSFORMER:
        return (f'x = TransformerBlock(d_model={c["d_model"]}, num_heads={c["num_heads"]}, d_ff={c["d_ff"]}, '
                f'dropout={c["dropout"]}, name={name})(x, train)')
    if kind == LayerKind.ATTENTION:
        return (f'x = nn.MultiHeadDotProductAttention(num_heads={c["num_heads"]}, qkv_features={c["d_model"]}, '
                f'name={name})(x)')
    if kind == LayerKind.BATCHNORM:
        return f'x = nn.BatchNorm(use_running_average=not train, name={name})(x)'
    if kind == LayerKind.LAYERNORM:
        return f'x = nn.LayerNorm(name={name})(x)'
    if kind == LayerKind.DROPOUT:
        return f'x = nn.Dropout(rate={c["rate"]}, deterministic=not train, name={name})(x)'
    # Stateless ops are plain functions in Flax; the name only labels the line
    if kind in (LayerKind.MAXPOOL2D, LayerKind.AVGPOOL2D):
        k = c["kernel_size"]
        fn = 'nn.max_pool' if kind == LayerKind.MAXPOOL2D else 'nn.avg_pool'
        return f'x = {fn}(x, window_shape=({k}, {k}), strides=({k}, {k}))  # {unit.name}'
    if kind == LayerKind.RELU:
        return f'x = nn.relu(x)  # {unit.name}'
    if kind == LayerKind.SOFTMAX:
        return f'x = nn.softmax(x, axis=-1)  # {unit.name}'
    raise ValueError(f"No Flax mapping for {kind!r}")


class JAXCodeGenerator(CodeGenerator):
    """Generates a Flax ``nn.Module`` with a compact ``__call__``."""

    framework = 'jax'
    display_name = 'JAX'

    def generate(self) -> str:
        lines = self.header() + [
            'import jax',
            'import jax.numpy as jnp',
            'import flax.linen as nn',
            '',
            '',
        ]
        kinds = self.kinds()
        if LayerKind.TRANSFORMER in kinds:
            lines.extend(_TRANSFORMER_BLOCK + ['', ''])
        if kinds & {LayerKind.LSTM, LayerKind.GRU}:
            lines.extend(_RECURRENT_STACK + ['', ''])

        lines.extend([
            'class LayerCalModel(nn.Module):',
            '    @nn.compact',
            '    def __call__(self, x, train: bool = False):',
        ])
        for unit in self.units:
            if unit.repeated:
                lines.append(f'        for i in range({unit.count}):')
                lines.append(f'            {layer_stmt(unit, indexed_name(unit.name))}')
            else:
                lines.append(f'        {layer_stmt(unit, quoted_name(unit.name))}')
        lines.extend([
            '        return x',
            '',
            '',
            '# Create model instance',
            'model = LayerCalModel()',
            '',
            '# Example usage:',
            '# variables = model.init(jax.random.PRNGKey(0), jnp.ones(input_shape))',
            '# output = model.apply(variables, x)',
        ])
        return '\n'.join(lines) + '\n'
