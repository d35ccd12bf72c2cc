"""
Ingestion write path: command handlers, query handlers and the network saga.
"""
