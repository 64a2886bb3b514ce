"""
Demo data for trying Cursor Cost Explorer without an export.
"""
