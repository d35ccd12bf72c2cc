"""
Query DTOs.
"""

from .schemas import FetchEventsQuery, GetModelsQuery, FilterSchema, PagingSchema

__all__ = [
    "FetchEventsQuery",
    "GetModelsQuery",
    "FilterSchema",
    "PagingSchema",
]
