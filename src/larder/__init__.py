"""
Larder pantry-planning core.

The package exposes pure planning functions (recipe recommendations, meal-plan demand,
shopping lists), the sync envelope resolver, and the retention engine, together with
thin CLI and HTTP surfaces around them.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
