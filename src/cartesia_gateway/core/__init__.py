"""
Core Infrastructure for cartesia-gateway.

This package provides foundational components:
    - config.py: Configuration loading and validation
    - errors.py: Error taxonomy shared by services and API
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics for upstream calls
"""
