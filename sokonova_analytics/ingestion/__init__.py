"""
Data Ingestion Module

Development seed data for the marketplace tables.
"""
from .seed_db import create_tables, seed

__all__ = [
    "create_tables",
    "seed",
]
