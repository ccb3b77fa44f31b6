"""
Core utilities: exception hierarchy and request parameter validation shared by
ingestion, aggregation, cache and service layers.
"""
