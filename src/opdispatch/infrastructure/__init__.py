"""
Infrastructure layer: stock middleware, event log backends, logging setup.
"""
