"""
Core engine: ingestion windows, extraction pipelines and validation.
"""
