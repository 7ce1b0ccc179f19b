"""Service layer namespace."""

__all__ = [
    "aggregation",
    "buckets",
    "catalog",
    "periods",
    "predicates",
    "quarters",
    "reporting",
    "shaping",
]
