"""Framework code generators and the lookup used by the API."""

import logging
from typing import Dict, Iterable, Type

from ..errors import UnknownFrameworkError
from ..grouping import build_units
from ..model import LayerInstance
from .base import CodeGenerator
from .jax import JAXCodeGenerator
from .pytorch import PyTorchCodeGenerator
from .tensorflow import TensorFlowCodeGenerator

logger = logging.getLogger(__name__)

GENERATORS: Dict[str, Type[CodeGenerator]] = {
    cls.framework: cls
    for cls in (PyTorchCodeGenerator, TensorFlowCodeGenerator, JAXCodeGenerator)
}
FRAMEWORKS = tuple(GENERATORS)


def get_generator(framework: str) -> Type[CodeGenerator]:
    try:
        return GENERATORS[framework]
    except (KeyError, TypeError):
        raise UnknownFrameworkError(
            f"Unknown framework {framework!r}; expected one of {', '.join(FRAMEWORKS)}"
        ) from None


def create_generator(framework: str, layers: Iterable[LayerInstance]) -> CodeGenerator:
    """Group and name ``layers`` and wrap them in the generator for ``framework``."""
    units = build_units(layers)
    logger.debug("Generating %s code for %d units", framework, len(units))
    return get_generator(framework)(units)


def generate_code(framework: str, layers: Iterable[LayerInstance]) -> str:
    return create_generator(framework, layers).generate()


__all__ = [
    'CodeGenerator',
    'FRAMEWORKS',
    'GENERATORS',
    'JAXCodeGenerator',
    'PyTorchCodeGenerator',
    'TensorFlowCodeGenerator',
    'create_generator',
    'generate_code',
    'get_generator',
]
