"""Caching Service Implementation.

Provides the concrete implementation of the CacheService interface with two
levels (L1: in-memory, L2: pluggable durable storage), per-entity TTL
policies and the cache key scheme.
Bounded Context: Cache Management
"""
