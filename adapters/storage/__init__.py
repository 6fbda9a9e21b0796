from .memory_store import InMemoryHealthStore

__all__ = ["InMemoryHealthStore"]
