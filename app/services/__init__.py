"""
app/services package marker.
"""

from app.services.discovery_service import DiscoveryService, get_discovery_service
from app.services.transfer_service import (
    TransferRun,
    TransferService,
    TransferState,
    get_transfer_service,
)
from app.services.type_inferencer import TypeInferencer

__all__ = [
    "DiscoveryService",
    "get_discovery_service",
    "TransferRun",
    "TransferService",
    "TransferState",
    "get_transfer_service",
    "TypeInferencer",
]
