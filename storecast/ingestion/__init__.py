"""
Data Ingestion Module
"""
from .parsers import parse_checkout, parse_customer, parse_order
from .sources import InMemoryRecordSource, RecordSource

__all__ = [
    "parse_checkout",
    "parse_customer",
    "parse_order",
    "InMemoryRecordSource",
    "RecordSource",
]
