from .engine import DecodeResult, OperationState, ProtocolEngine
from .padding import MAX_PAYLOAD, PaddingBucket, pad, unpad

__all__ = [
    "DecodeResult",
    "OperationState",
    "ProtocolEngine",
    "MAX_PAYLOAD",
    "PaddingBucket",
    "pad",
    "unpad",
]
