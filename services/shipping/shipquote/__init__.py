"""Parcel quotation, shipment lifecycle and tracking service."""

__version__ = "1.0.0"
