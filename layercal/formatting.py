"""Human readable renderings of counts and sizes."""

_NUMBER_UNITS = ((1e12, 'T'), (1e9, 'G'), (1e6, 'M'), (1e3, 'K'))
_BYTE_UNITS = ((1e9, 'GB'), (1e6, 'MB'), (1e3, 'KB'))


def format_number(num) -> str:
    """Format a large number with a K/M/G/T suffix, e.g. 3152384 -> '3.15M'."""
    for threshold, suffix in _NUMBER_UNITS:
        if num >= threshold:
            return f"{num / threshold:.2f}{suffix}"
    return str(num)


def format_bytes(num_bytes) -> str:
    """Format a byte count with decimal units, e.g. 4000000 -> '4.00 MB'."""
    for threshold, suffix in _BYTE_UNITS:
        if num_bytes >= threshold:
            return f"{num_bytes / threshold:.2f} {suffix}"
    return f"{num_bytes} B"


def format_model_size(size_mb: float) -> str:
    """Format a size given in binary megabytes, switching to KB below 1 MB."""
    if size_mb < 1:
        return f"{size_mb * 1024:.2f} KB"
    return f"{size_mb:.2f} MB"
