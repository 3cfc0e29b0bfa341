"""
itmd - Itinerary Markdown Parser

Parses the itinerary flavoured Markdown dialect into a typed document model:
dated headings, transportation/stay/activity events with resolved times,
destinations and normalized prices, and alert callouts.
"""

__version__ = "0.1.0"
__author__ = "itmd Team"

from .engine import ItineraryEngine, parse_document
from .services import Services, make_services

__all__ = ["ItineraryEngine", "parse_document", "Services", "make_services", "__version__"]
