"""Common Lambda utilities and base classes.

Provides foundational components for building Lambda handlers including
the typed handler base class, the API request handler and resolver,
configuration, errors, logging and metrics.
"""
