"""Performance utilities package."""

from .batch_processor import BatchProcessor, BatchResult, chunk

__all__ = [
    "BatchProcessor",
    "BatchResult",
    "chunk",
]
