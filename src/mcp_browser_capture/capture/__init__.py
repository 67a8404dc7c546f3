"""Multi-source capture aggregator and the plain network recorder built on the same listeners."""

from .aggregator import CaptureOptions, CaptureReport, capture_media, render_summary
from .collection import CaptureCollection, CapturedResource
from .media import ContentHint, DiscoverySource
from .recorder import ajax_predicate, record_network, resource_type_predicate
from .session import CaptureSession

__all__ = [
    "CaptureOptions",
    "CaptureReport",
    "capture_media",
    "render_summary",
    "CaptureCollection",
    "CapturedResource",
    "ContentHint",
    "DiscoverySource",
    "CaptureSession",
    "ajax_predicate",
    "record_network",
    "resource_type_predicate",
]
