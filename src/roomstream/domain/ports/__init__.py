from .signing import ScriptExecutorPort, SignatureCachePort, SigningFunction
from .stream_negotiator import StreamNegotiatorPort

__all__ = [
    "ScriptExecutorPort",
    "SignatureCachePort",
    "SigningFunction",
    "StreamNegotiatorPort",
]
