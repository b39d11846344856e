"""Reference data loaders for the statistics engine."""

from .geography import load_geo_hierarchy, load_geo_entities

__all__ = [
    "load_geo_hierarchy",
    "load_geo_entities",
]
