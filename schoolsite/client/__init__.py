"""
HTTP client for the Remote Document adapter.
"""

from .site_api_client import ENTITY_ENDPOINTS, FIELD_ENDPOINTS, SiteApiClient

__all__ = ["ENTITY_ENDPOINTS", "FIELD_ENDPOINTS", "SiteApiClient"]
