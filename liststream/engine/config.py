"""Command defaults with environment fallbacks."""

import os
from enum import Enum
from typing import Optional, Union

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_FORMAT = "raw"

TRUTHY = {"1", "true", "yes", "on"}

class OutputFormat(str, Enum):
    """How a finalized collection is written out."""
    RAW = "raw"
    JSON = "json"
    YAML = "yaml"

def resolve_objects(objects: Optional[bool] = None) -> bool:
    """Resolve whether to collect objects instead of bytes.

    Args:
        objects: Optional explicit choice

    Returns:
        The explicit choice, else LISTSTREAM_OBJECTS, else False (binary)
    """
    if objects is not None:
        return objects
    return os.environ.get("LISTSTREAM_OBJECTS", "").strip().lower() in TRUTHY

def resolve_chunk_size(size: Optional[int] = None) -> int:
    """Resolve the read size for binary input.

    Raises:
        ValueError: The size is not a positive integer
    """
    if size is None:
        size = int(os.environ.get("LISTSTREAM_CHUNK_SIZE", DEFAULT_CHUNK_SIZE))
    if size <= 0:
        raise ValueError(f"chunk size must be positive, got {size}")
    return size

def resolve_format(fmt: Union[OutputFormat, str, None] = None) -> OutputFormat:
    if fmt:
        return OutputFormat(fmt)
    return OutputFormat(os.environ.get("LISTSTREAM_FORMAT", DEFAULT_FORMAT))
