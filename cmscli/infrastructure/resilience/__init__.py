"""API Resilience Implementations.

Contains the error classifier, the retry policy helpers and the retry-aware
request executor.
Bounded Context: API Resilience
"""
