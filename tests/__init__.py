"""
Tile Server Test Suite

Structure:
- unit/: Unit tests for tile reads, configuration, logging and the HTTP routes
"""
