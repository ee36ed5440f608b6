"""
Usage Chargeback Report

Queries gateway usage logs, aggregates token consumption per product and
model, exports the result as CSV and publishes it to blob storage. Stage
failures are recorded as structured failure events.
"""

__version__ = "1.0.0"
