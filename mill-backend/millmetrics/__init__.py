"""Temporal filter resolution and aggregation for mill production reports."""
