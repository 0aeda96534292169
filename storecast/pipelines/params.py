"""
Report Parameters

Validated inputs for the report pipelines. Invalid values raise
``pydantic.ValidationError`` before any record is fetched.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from storecast.analytics.segmentation import SegmentType
from storecast.models.records import GrowthScenario


class StoreAnalyticsParams(BaseModel):
    period_days: int = Field(default=30, gt=0, description="Analysis period in days")
    compare_previous: bool = Field(default=True, description="Compare with the preceding period")


class ForecastParams(BaseModel):
    forecast_months: Optional[List[int]] = Field(default=None, description="Horizons in months")
    growth_scenario: GrowthScenario = Field(default=GrowthScenario.MODERATE, description="Fallback growth scenario")
    include_seasonality: bool = Field(default=True, description="Apply seasonal factors")

    @field_validator("forecast_months")
    @classmethod
    def validate_forecast_months(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        """Horizons must be a non-empty list of positive month counts"""
        if v is None:
            return v
        if not v:
            raise ValueError("forecast_months must not be empty")
        if any(m < 1 for m in v):
            raise ValueError("forecast_months must be positive")
        return v


class ConversionAnalysisParams(BaseModel):
    period_days: int = Field(default=30, gt=0, description="Analysis period in days")


class ProductPerformanceParams(BaseModel):
    period_days: int = Field(default=30, gt=0, description="Analysis period in days")
    top_n: int = Field(default=10, gt=0, description="Number of products per ranking")


class SegmentAnalysisParams(BaseModel):
    segment_type: SegmentType = Field(description="Segmentation scheme")
