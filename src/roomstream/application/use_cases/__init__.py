from .resolve_stream import ResolveStreamUseCase

__all__ = ["ResolveStreamUseCase"]
