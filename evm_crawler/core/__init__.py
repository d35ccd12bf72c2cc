"""
Core infrastructure: configuration, logging, exceptions, database and metrics.
"""
