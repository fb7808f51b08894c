"""Wire format helpers."""

from .identifiers import (
    Id,
    decode,
    encode,
    encode_path_segment,
    escape_path_segment,
)

__all__ = [
    "Id",
    "decode",
    "encode",
    "encode_path_segment",
    "escape_path_segment",
]
