"""
Report Pipelines Module
"""
from .reports import (
    ConversionAnalysisResult,
    ForecastResult,
    ProductPerformanceResult,
    ReportService,
    SegmentAnalysisResult,
    StoreAnalyticsResult,
)

__all__ = [
    "ConversionAnalysisResult",
    "ForecastResult",
    "ProductPerformanceResult",
    "ReportService",
    "SegmentAnalysisResult",
    "StoreAnalyticsResult",
]
