"""Durable key-value backends for the L2 cache tier.

Bounded Context: Storage
"""
