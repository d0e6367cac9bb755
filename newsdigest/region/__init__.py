"""Region profile for relevance filtering and local angles."""

from .profile import RegionContext, load_default_region

__all__ = ["RegionContext", "load_default_region"]
