"""Reference data: Area Median Income tables and their cache."""

from benefits_engine.reference.ami_cache import AmiCache, AmiCacheStats, EvictionPolicy
from benefits_engine.reference.source import AmiDataError, AmiDataNotFoundError, AmiDataSource

__all__ = [
    "AmiCache",
    "AmiCacheStats",
    "EvictionPolicy",
    "AmiDataError",
    "AmiDataNotFoundError",
    "AmiDataSource",
]
