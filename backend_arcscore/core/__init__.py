"""
Core utilities: shared exceptions used across chain client, ingestion and analytics.
"""
