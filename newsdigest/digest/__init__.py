from .aggregator import DigestAggregator
from .categories import Category, categorize, load_categories

__all__ = ["Category", "DigestAggregator", "categorize", "load_categories"]
