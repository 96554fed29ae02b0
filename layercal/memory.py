"""Memory footprint estimates derived from a parameter count."""

import logging

logger = logging.getLogger(__name__)

BYTES_PER_PARAM = {
    'fp32': 4,
    'fp16': 2,
    'bf16': 2,
    'int8': 1,
}
DEFAULT_PRECISION = 'fp32'
MEMORY_MODES = ('inference', 'training')

# weights + gradients + Adam first and second moments
TRAINING_MULTIPLIER = 4


def bytes_per_param(precision: str) -> int:
    """Bytes used to store one parameter; unknown precisions count as fp32."""
    if not isinstance(precision, str) or precision not in BYTES_PER_PARAM:
        logger.debug("Unknown precision %r, assuming %s", precision, DEFAULT_PRECISION)
        return BYTES_PER_PARAM[DEFAULT_PRECISION]
    return BYTES_PER_PARAM[precision]


def calculate_memory(total_params: int, mode: str = 'inference', precision: str = 'fp32') -> int:
    """
    Estimate the bytes needed to hold a model.

    In inference mode only the weights are counted. Any other mode is treated
    as training and multiplies the weight size by a flat 4x: weights, their
    gradients and the two moment buffers an Adam-style optimizer keeps. This
    is a rough estimate; it ignores activations, optimizer-specific state
    sizes and mixed-precision master copies.
    """
    size = total_params * bytes_per_param(precision)
    if mode == 'inference':
        return size
    return size * TRAINING_MULTIPLIER


def model_size_mb(total_params: int) -> float:
    """Size of the fp32 weights in binary megabytes."""
    return (total_params * BYTES_PER_PARAM['fp32']) / (1024 * 1024)
