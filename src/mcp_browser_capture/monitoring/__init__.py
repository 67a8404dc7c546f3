from .metrics import MetricsStore

__all__ = ["MetricsStore"]
