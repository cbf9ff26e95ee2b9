"""
Core module - configuration, logging, errors, authentication and authorization.
"""
