"""
Ingestion layer: parses the bundled category feed into a Taxonomy.
"""
