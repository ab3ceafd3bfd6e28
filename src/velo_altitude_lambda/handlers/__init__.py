"""Lambda handler implementations.

One API handler per resource family:
- cols: mountain-pass catalog, with climb effort estimates
- nutrition: recipes, with daily nutritional needs
- challenges: col challenges, with progress tracking
"""
