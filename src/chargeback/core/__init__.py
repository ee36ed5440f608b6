"""
Core infrastructure: configuration, exceptions and the pipeline executor.
"""
