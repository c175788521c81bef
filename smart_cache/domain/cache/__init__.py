"""
Cache Domain Module

Domain-Driven Design implementation for the client cache.
Contains value objects, entities, the registry, the store contract,
and the event invalidation rules.
"""
