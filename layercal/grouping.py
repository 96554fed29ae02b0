"""
Smart grouping and naming of layers for code generation.

``group_layers`` collapses runs of identical consecutive layers, ``annotate``
gives every run a variable name and resolves the context a generator needs
(whether a normalization layer sees flat vectors or feature maps).
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .layer_types import FLAT_KINDS, NORM_KINDS, SPATIAL_KINDS, LayerKind
from .model import LayerInstance

RANK_FLAT = 'flat'
RANK_SPATIAL = 'spatial'

SHORT_NAMES = {
    LayerKind.EMBEDDING: 'embedding',
    LayerKind.LINEAR: 'fc',
    LayerKind.CONV2D: 'conv',
    LayerKind.LSTM: 'lstm',
    LayerKind.GRU: 'gru',
    LayerKind.TRANSFORMER: 'transformer',
    LayerKind.ATTENTION: 'attn',
    LayerKind.BATCHNORM: 'bn',
    LayerKind.LAYERNORM: 'ln',
    LayerKind.DROPOUT: 'dropout',
    LayerKind.MAXPOOL2D: 'maxpool',
    LayerKind.AVGPOOL2D: 'avgpool',
    LayerKind.RELU: 'relu',
    LayerKind.SOFTMAX: 'softmax',
}


@dataclass(frozen=True)
class Group:
    """A maximal run of consecutive layers with the same kind and configuration."""
    kind: LayerKind
    config: Dict[str, Any]
    count: int
    member_ids: Tuple[str, ...]
    start: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.kind.value,
            'config': dict(self.config),
            'count': self.count,
            'layer_ids': list(self.member_ids),
        }


@dataclass(frozen=True)
class NamedUnit:
    """A group with its generated variable name and resolved context."""
    group: Group
    name: str
    rank: Optional[str] = None

    @property
    def kind(self) -> LayerKind:
        return self.group.kind

    @property
    def config(self) -> Dict[str, Any]:
        return self.group.config

    @property
    def count(self) -> int:
        return self.group.count

    @property
    def repeated(self) -> bool:
        return self.group.count > 1

    def to_dict(self) -> Dict[str, Any]:
        data = self.group.to_dict()
        data['name'] = self.name
        if self.rank is not None:
            data['rank'] = self.rank
        return data


def group_layers(layers: Sequence[LayerInstance]) -> List[Group]:
    """Run-length encode ``layers`` on (kind, configuration), keeping order."""
    groups: List[Group] = []
    run: List[LayerInstance] = []
    start = 0

    for index, layer in enumerate(layers):
        if run and (layer.kind != run[0].kind or layer.config != run[0].config):
            groups.append(_close_run(run, start))
            run = []
        if not run:
            start = index
        run.append(layer)

    if run:
        groups.append(_close_run(run, start))
    return groups


def _close_run(run: List[LayerInstance], start: int) -> Group:
    first = run[0]
    return Group(
        kind=first.kind,
        config=dict(first.config),
        count=len(run),
        member_ids=tuple(layer.id for layer in run),
        start=start,
    )


def expand_groups(groups: Sequence[Group]) -> List[LayerInstance]:
    """Undo grouping: one layer instance per group member."""
    return [LayerInstance(id=member_id, kind=group.kind, config=dict(group.config))
            for group in groups for member_id in group.member_ids]


def resolve_ranks(layers: Sequence[LayerInstance]) -> List[str]:
    """
    Rank in force just before each layer.

    Convolution and pooling layers switch the running rank to spatial; layers
    producing feature vectors switch it back to flat. Everything else, the
    normalization layers included, leaves it unchanged.
    """
    ranks = []
    current = RANK_FLAT
    for layer in layers:
        ranks.append(current)
        if layer.kind in SPATIAL_KINDS:
            current = RANK_SPATIAL
        elif layer.kind in FLAT_KINDS:
            current = RANK_FLAT
    return ranks


def annotate(groups: Sequence[Group], layers: Sequence[LayerInstance]) -> List[NamedUnit]:
    """
    Name each group and attach its context.

    The first group of a kind gets the bare short name ("fc"), later groups of
    the same kind a running suffix ("fc2", "fc3"). Normalization groups read
    their rank from the ungrouped ``layers`` at the group's first member.
    """
    ranks = resolve_ranks(layers)
    seen: Dict[LayerKind, int] = defaultdict(int)
    units = []
    for group in groups:
        seen[group.kind] += 1
        base = SHORT_NAMES[group.kind]
        name = base if seen[group.kind] == 1 else f"{base}{seen[group.kind]}"
        rank = ranks[group.start] if group.kind in NORM_KINDS else None
        units.append(NamedUnit(group=group, name=name, rank=rank))
    return units


def build_units(layers: Sequence[LayerInstance]) -> List[NamedUnit]:
    """Group and annotate in one go."""
    layers = list(layers)
    return annotate(group_layers(layers), layers)
