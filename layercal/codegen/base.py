"""Shared plumbing for the framework code generators."""

from typing import Iterable, List, Set

from ..grouping import NamedUnit
from ..layer_types import LayerKind


def py_bool(value) -> str:
    return 'True' if value else 'False'


def quoted_name(name: str) -> str:
    """Source literal for a fixed layer name: fc -> "fc"."""
    return f'"{name}"'


def indexed_name(name: str, index_var: str = 'i') -> str:
    """Source literal for a name inside a repeat loop: fc -> f"fc_{i}"."""
    return f'f"{name}_{{{index_var}}}"'


class CodeGenerator:
    """
    Turns named layer units into source text for one framework.

    Subclasses fill in ``framework``, ``display_name`` and ``generate``. A
    unit with ``count > 1`` must be rendered as one repeated block, never
    unrolled.
    """

    framework = ''
    display_name = ''

    def __init__(self, units: Iterable[NamedUnit]):
        self.units: List[NamedUnit] = list(units)

    @property
    def filename(self) -> str:
        return f"layercal_{self.framework}.py"

    def kinds(self) -> Set[LayerKind]:
        return {unit.kind for unit in self.units}

    def header(self) -> List[str]:
        return [
            '"""',
            f'{self.display_name} model',
            'Generated by LayerCal',
            '"""',
            '',
        ]

    def generate(self) -> str:
        raise NotImplementedError
