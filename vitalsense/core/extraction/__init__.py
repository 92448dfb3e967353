"""
Extraction Module

Signal-processing pipelines that turn buffered sensor samples into
assessment results. Import the pipeline modules directly.
"""
