from batchguard.adapters.storage.in_memory import InMemoryDirectory

__all__ = ["InMemoryDirectory"]
