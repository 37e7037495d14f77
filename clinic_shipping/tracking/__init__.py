"""
Tracking integration module.
Pulls delivery status from Envioclick and moves orders along.
"""

from clinic_shipping.tracking.status_mapping import map_carrier_status
from clinic_shipping.tracking.sync_job import TrackingSyncJob
from clinic_shipping.tracking.tracking_client import TrackingClient

__all__ = ["TrackingClient", "TrackingSyncJob", "map_carrier_status"]
