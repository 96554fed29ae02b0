"""Model-wide totals and the per-layer parameter breakdown."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .layer_types import LayerKind, ShapeContext, flops, parameter_count
from .model import LayerInstance


@dataclass(frozen=True)
class LayerStats:
    id: str
    kind: LayerKind
    params: int
    flops: int
    percentage: float

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'type': self.kind.value,
            'params': self.params,
            'flops': self.flops,
            'percentage': round(self.percentage, 1),
        }


@dataclass(frozen=True)
class ModelSummary:
    total_params: int
    total_flops: int
    layers: List[LayerStats] = field(default_factory=list)


def summarize(layers: Iterable[LayerInstance], context: Optional[ShapeContext] = None) -> ModelSummary:
    """
    Fold a layer sequence through the formula registry.

    ``context`` overrides the per-kind shape defaults for every layer; fields
    left unset keep each kind's own default. Layers keep model order in the
    breakdown, and every share is 0.0 when the model has no parameters.
    """
    counted = [(layer, parameter_count(layer.kind, layer.config), flops(layer.kind, layer.config, context))
               for layer in layers]
    total_params = sum(p for _, p, _ in counted)
    total_flops = sum(f for _, _, f in counted)

    stats = []
    for layer, layer_params, layer_flops in counted:
        percentage = (layer_params / total_params) * 100 if total_params > 0 else 0.0
        stats.append(LayerStats(layer.id, layer.kind, layer_params, layer_flops, percentage))
    return ModelSummary(total_params=total_params, total_flops=total_flops, layers=stats)
