"""
Ingestion layer for Cursor Cost Explorer.

Defines the usage event model and the CSV export parser.
"""
