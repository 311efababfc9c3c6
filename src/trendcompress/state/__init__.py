"""State/store layer.

Holds the topic -> :class:`~trendcompress.models.CompressionState` mapping
between engine calls. Expiry and eviction are store policies; the engine
never deletes state.
"""

from trendcompress.state.store import InMemoryStateStore, StateStore

__all__ = ["InMemoryStateStore", "StateStore"]
