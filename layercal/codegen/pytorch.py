"""PyTorch ``nn.Module`` generation."""

from typing import List

from ..grouping import RANK_SPATIAL, NamedUnit
from ..layer_types import LayerKind
from .base import CodeGenerator, py_bool

# Modules whose forward returns a tuple; repeated ones go in an nn.ModuleList
_TUPLE_OUTPUT = {LayerKind.LSTM, LayerKind.GRU, LayerKind.ATTENTION}


def module_expr(unit: NamedUnit) -> str:
    """The ``nn`` constructor call for one layer of ``unit``."""
    c = unit.config
    kind = unit.kind

    if kind == LayerKind.EMBEDDING:
        return f'nn.Embedding({c["vocab_size"]}, {c["embedding_dim"]})'
    if kind == LayerKind.LINEAR:
        return f'nn.Linear({c["input_dim"]}, {c["output_dim"]}, bias={py_bool(c["use_bias"])})'
    if kind == LayerKind.CONV2D:
        return (f'nn.Conv2d({c["in_channels"]}, {c["out_channels"]}, kernel_size={c["kernel_size"]}, '
                f'padding="same", bias={py_bool(c["use_bias"])})')
    if kind in (LayerKind.LSTM, LayerKind.GRU):
        cls = 'nn.LSTM' if kind == LayerKind.LSTM else 'nn.GRU'
        return (f'{cls}({c["input_size"]}, {c["hidden_size"]}, num_layers={c["num_layers"]}, '
                f'bidirectional={py_bool(c["bidirectional"])}, batch_first=True)')
    if kind == LayerKind.TRANSFORMER:
        return (f'nn.TransformerEncoderLayer(d_model={c["d_model"]}, nhead={c["num_heads"]}, '
                f'dim_feedforward={c["d_ff"]}, dropout={c["dropout"]}, batch_first=True)')
    if kind == LayerKind.ATTENTION:
        return f'nn.MultiheadAttention({c["d_model"]}, {c["num_heads"]}, batch_first=True)'
    if kind == LayerKind.BATCHNORM:
        cls = 'nn.BatchNorm2d' if unit.rank == RANK_SPATIAL else 'nn.BatchNorm1d'
        return f'{cls}({c["num_features"]})'
    if kind == LayerKind.LAYERNORM:
        return f'nn.LayerNorm({c["normalized_shape"]})'
    if kind == LayerKind.DROPOUT:
        return f'nn.Dropout(p={c["rate"]})'
    if kind == LayerKind.MAXPOOL2D:
        return f'nn.MaxPool2d(kernel_size={c["kernel_size"]})'
    if kind == LayerKind.AVGPOOL2D:
        return f'nn.AvgPool2d(kernel_size={c["kernel_size"]})'
    if kind == LayerKind.RELU:
        return 'nn.ReLU()'
    if kind == LayerKind.SOFTMAX:
        return 'nn.Softmax(dim=-1)'
    raise ValueError(f"No PyTorch mapping for {kind!r}")


def call_stmt(kind: LayerKind, callee: str) -> str:
    if kind in (LayerKind.LSTM, LayerKind.GRU):
        return f'x, _ = {callee}(x)'
    if kind == LayerKind.ATTENTION:
        return f'x, _ = {callee}(x, x, x)'
    return f'x = {callee}(x)'


class PyTorchCodeGenerator(CodeGenerator):
    """Generates a PyTorch ``nn.Module`` from named layer units."""

    framework = 'pytorch'
    display_name = 'PyTorch'

    def generate(self) -> str:
        lines = self.header() + [
            'import torch',
            'import torch.nn as nn',
            '',
            '',
            'class LayerCalModel(nn.Module):',
            '    def __init__(self):',
            '        super().__init__()',
        ]
        lines.extend(self._init_lines())
        lines.extend([
            '',
            '    def forward(self, x):',
        ])
        lines.extend(self._forward_lines())
        lines.extend([
            '        return x',
            '',
            '',
            '# Create model instance',
            'model = LayerCalModel()',
            'print(model)',
            f'print(f"Parameters: {{sum(p.numel() for p in model.parameters()):,}}")',
        ])
        return '\n'.join(lines) + '\n'

    def _init_lines(self) -> List[str]:
        lines = []
        for unit in self.units:
            expr = module_expr(unit)
            if not unit.repeated:
                lines.append(f'        self.{unit.name} = {expr}')
            elif unit.kind in _TUPLE_OUTPUT:
                lines.extend([
                    f'        self.{unit.name} = nn.ModuleList([',
                    f'            {expr}',
                    f'            for _ in range({unit.count})',
                    '        ])',
                ])
            else:
                lines.extend([
                    f'        self.{unit.name} = nn.Sequential(*[',
                    f'            {expr}',
                    f'            for _ in range({unit.count})',
                    '        ])',
                ])
        return lines

    def _forward_lines(self) -> List[str]:
        lines = []
        for unit in self.units:
            if unit.repeated and unit.kind in _TUPLE_OUTPUT:
                lines.append(f'        for layer in self.{unit.name}:')
                lines.append(f'            {call_stmt(unit.kind, "layer")}')
            else:
                lines.append(f'        {call_stmt(unit.kind, "self." + unit.name)}')
        return lines
