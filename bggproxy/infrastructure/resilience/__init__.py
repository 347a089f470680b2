"""API Resilience Implementations.

Contains the shared rate limiter and the retry service with a fixed
backoff table for transient upstream failures.
Bounded Context: API Resilience
"""
