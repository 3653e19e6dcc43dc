"""Archival Lens: transcription, clustering and entity reconciliation for archival scans."""

__version__ = "0.1.0"

from archlens.models import Cluster, EntityType, Page, PageStatus, Tier
from archlens.project import ProjectController

__all__ = [
    "Cluster",
    "EntityType",
    "Page",
    "PageStatus",
    "ProjectController",
    "Tier",
    "__version__",
]
