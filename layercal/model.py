"""
The user's model: an ordered list of layer instances.

A ``Model`` is owned by whoever edits it. The calculation and code generation
passes only read it.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .errors import ModelError
from .layer_types import FieldSpec, FieldType, LayerKind, default_config, schema_for

logger = logging.getLogger(__name__)


def new_layer_id() -> str:
    return f"layer_{uuid.uuid4().hex[:12]}"


def clamp_value(spec: FieldSpec, value: Any, layer_id: Optional[str] = None) -> Any:
    """
    Coerce a field value the way the editor does.

    Integer fields are floored and kept at 1 or above. Real fields such as a
    dropout rate are stored untouched.
    """
    if spec.type is FieldType.BOOLEAN:
        if not isinstance(value, bool):
            raise ModelError(f"Field '{spec.key}' expects true or false, got {value!r}", layer_id)
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ModelError(f"Field '{spec.key}' expects a number, got {value!r}", layer_id)
    if not math.isfinite(value):
        raise ModelError(f"Field '{spec.key}' must be a finite number, got {value!r}", layer_id)
    if spec.type is FieldType.INTEGER:
        return max(1, math.floor(value))
    return value


@dataclass
class LayerInstance:
    """One placed layer: its identity, kind and configuration values."""
    id: str
    kind: LayerKind
    config: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(cls, kind, layer_id: Optional[str] = None) -> 'LayerInstance':
        kind = LayerKind(kind)
        return cls(id=layer_id or new_layer_id(), kind=kind, config=default_config(kind))

    def update(self, key: str, value: Any):
        """Set one configuration field, clamping the value."""
        spec = next((f for f in schema_for(self.kind) if f.key == key), None)
        if spec is None:
            raise ModelError(f"Layer type '{self.kind.value}' has no field '{key}'", self.id)
        self.config[key] = clamp_value(spec, value, self.id)

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'type': self.kind.value, 'config': dict(self.config)}


class Model:
    """Ordered sequence of layer instances; order is both display and execution order."""

    def __init__(self, layers: Optional[List[LayerInstance]] = None):
        self.layers: List[LayerInstance] = list(layers or [])

    def __len__(self) -> int:
        return len(self.layers)

    def __iter__(self) -> Iterator[LayerInstance]:
        return iter(self.layers)

    def __getitem__(self, index) -> LayerInstance:
        return self.layers[index]

    def get(self, layer_id: str) -> Optional[LayerInstance]:
        return next((layer for layer in self.layers if layer.id == layer_id), None)

    def index_of(self, layer_id: str) -> int:
        for i, layer in enumerate(self.layers):
            if layer.id == layer_id:
                return i
        raise ModelError(f"No layer with id '{layer_id}'", layer_id)

    def add_layer(self, kind, index: Optional[int] = None, layer_id: Optional[str] = None) -> LayerInstance:
        """Insert a layer with default configuration, appending when no index is given."""
        if layer_id is not None and self.get(layer_id) is not None:
            raise ModelError(f"Duplicate layer id '{layer_id}'", layer_id)
        layer = LayerInstance.create(kind, layer_id)
        if index is None:
            self.layers.append(layer)
        else:
            self.layers.insert(index, layer)
        return layer

    def delete_layer(self, layer_id: str) -> bool:
        """Remove a layer by id. Returns False when no such layer exists."""
        before = len(self.layers)
        self.layers = [layer for layer in self.layers if layer.id != layer_id]
        return len(self.layers) != before

    def move_layer(self, from_index: int, to_index: int):
        """Move the layer at ``from_index`` to ``to_index``, keeping the others in order."""
        if from_index == to_index:
            return
        layer = self.layers.pop(from_index)
        self.layers.insert(to_index, layer)

    def update_layer_param(self, layer_id: str, key: str, value: Any):
        self.layers[self.index_of(layer_id)].update(key, value)

    @classmethod
    def from_payload(cls, payload) -> 'Model':
        """
        Build a model from the JSON list sent by the editor.

        Each entry needs a ``type``; ``id`` is generated when missing and the
        configuration may be given as ``config`` or ``params``. Missing fields
        take their defaults and unknown fields are dropped, so every layer
        ends up with exactly the fields of its schema.
        """
        if not isinstance(payload, list):
            raise ModelError("'layers' must be a list")

        model = cls()
        for position, entry in enumerate(payload):
            if not isinstance(entry, dict):
                raise ModelError(f"Layer {position + 1} is not an object")
            layer_id = entry.get('id')
            layer_id = str(layer_id) if layer_id is not None else None
            try:
                kind = LayerKind(entry.get('type'))
            except ValueError:
                raise ModelError(f"Unknown layer type {entry.get('type')!r}", layer_id) from None

            layer = model.add_layer(kind, layer_id=layer_id)
            config = entry.get('config', entry.get('params')) or {}
            if not isinstance(config, dict):
                raise ModelError(f"Configuration of layer {position + 1} is not an object", layer.id)
            known = {f.key for f in schema_for(kind)}
            for key, value in config.items():
                if key not in known:
                    logger.warning("Dropping unknown field %r on %s layer %s", key, kind.value, layer.id)
                    continue
                layer.update(key, value)
        return model

    def to_payload(self) -> List[Dict[str, Any]]:
        return [layer.to_dict() for layer in self.layers]
