"""Infrastructure layer — cross-cutting concerns for the geotagged audio API.

Modules:
    metrics     Prometheus metrics registry (optional dependency).
"""
