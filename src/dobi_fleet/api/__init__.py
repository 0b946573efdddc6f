"""HTTP surface and snapshot aggregation."""

from dobi_fleet.api.data_api import FleetDataAggregator

__all__ = ["FleetDataAggregator"]
