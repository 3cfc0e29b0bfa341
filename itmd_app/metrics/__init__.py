"""Itinerary statistics: date span and cost totals."""

from .calculator import CostTotals, DateSummary, ItineraryStatistics, SkippedPrice, StatisticsCalculator

__all__ = ["CostTotals", "DateSummary", "ItineraryStatistics", "SkippedPrice", "StatisticsCalculator"]
