"""
Upstream integrations (catalog sources).
"""
