"""
Analytics Module
"""
from .aggregator import OrderTotals, aggregate_orders, to_float
from .attribution import TrafficAttributor
from .comparison import PeriodComparison, compare_periods
from .forecasting import ForecastBaseline, ForecastPoint, GrowthForecaster, bucket_by_month
from .funnel import FunnelAnalysis, FunnelRecommendation, analyze_funnel
from .products import ProductStat, product_stats, promotion_candidates, restock_candidates
from .segmentation import SegmentSummary, SegmentType, segment_customers

__all__ = [
    "OrderTotals",
    "aggregate_orders",
    "to_float",
    "TrafficAttributor",
    "PeriodComparison",
    "compare_periods",
    "ForecastBaseline",
    "ForecastPoint",
    "GrowthForecaster",
    "bucket_by_month",
    "FunnelAnalysis",
    "FunnelRecommendation",
    "analyze_funnel",
    "ProductStat",
    "product_stats",
    "promotion_candidates",
    "restock_candidates",
    "SegmentSummary",
    "SegmentType",
    "segment_customers",
]
