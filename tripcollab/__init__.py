"""
tripcollab: shared trip itineraries with per-day grouping and voting
"""

__version__ = "1.0.0"
