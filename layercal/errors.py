"""Exceptions raised at the boundary where layer payloads enter the engine."""

from typing import Optional


class LayerCalError(Exception):
    """Base class for all LayerCal errors."""

    status_code = 400

    def __init__(self, message: str, layer_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.layer_id = layer_id

    def to_dict(self):
        error = {'type': 'error', 'message': self.message}
        if self.layer_id is not None:
            error['layer_id'] = self.layer_id
        return error


class ModelError(LayerCalError):
    """A layer payload could not be turned into a valid model."""


class UnknownFrameworkError(LayerCalError):
    """Code generation was requested for a framework we do not emit."""

    status_code = 404


class SettingsError(LayerCalError):
    """A settings update named an unknown key or an invalid value."""
