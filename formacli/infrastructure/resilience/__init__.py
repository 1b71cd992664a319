"""API Resilience Implementations.

Contains services for handling API rate limits, retries with exponential
backoff, and serialized request queueing.
Bounded Context: API Resilience
"""
