"""Data collection package."""

from .price_collector import CollectionReport, WeeklyPriceCollector

__all__ = ["CollectionReport", "WeeklyPriceCollector"]
