"""
Emission stages.

Each stage contributes imports, constants, properties-array slots and
methods to a generated model through the hooks of EmissionStage.
"""

from .base import EmissionStage, ImportSet, PropertyStage
from .sync import SyncStage, SYNC_RESERVED_SLOTS

__all__ = [
    "EmissionStage",
    "ImportSet",
    "PropertyStage",
    "SyncStage",
    "SYNC_RESERVED_SLOTS",
]
