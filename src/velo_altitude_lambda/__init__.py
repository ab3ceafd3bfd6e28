"""Velo-Altitude serverless data API.

Provides Lambda handlers serving the cols, nutrition and challenges
collections, with a per-process store connection, a read-through TTL
cache kept in the document store, and a uniform JSON response envelope.
"""
