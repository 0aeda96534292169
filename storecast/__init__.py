"""
Storecast Analytics

Store analytics and forecasting engine: aggregates order, checkout and
customer records into performance metrics, traffic attribution, conversion
funnels, product velocity rankings and growth forecasts.
"""

__version__ = "1.0.0"
