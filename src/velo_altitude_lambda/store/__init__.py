"""Data access layer: store connection, document collections and the TTL cache."""
