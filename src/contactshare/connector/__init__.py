"""
Registry connection management
"""

from .service_connector import ServiceConnector

__all__ = ["ServiceConnector"]
