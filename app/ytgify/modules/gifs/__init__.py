"""
GIFs: upload, metadata, privacy, soft delete, sharing and remix lineage.
"""
