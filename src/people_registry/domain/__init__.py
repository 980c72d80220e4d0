"""Domain layer: value types, results, events and aggregates.

This package defines the primitives that every other layer depends on.
Value types, results and events are immutable; entities are the only
mutable state and are changed exclusively by the services.
"""
