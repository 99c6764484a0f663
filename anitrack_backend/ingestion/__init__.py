"""
Catalog ingestion (upstream reconciliation).
"""
