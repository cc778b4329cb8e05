"""Data package initialization."""

from .collection.price_collector import WeeklyPriceCollector

__all__ = ["WeeklyPriceCollector"]
