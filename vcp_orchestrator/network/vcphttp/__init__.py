"""HTTP client for the remote proof server."""

from .client import HttpProofEngine
from .constants import op_path
from .errors import WireFormatError

__all__ = [
    "HttpProofEngine",
    "WireFormatError",
    "op_path",
]
