"""
Command-line interface for Cursor Cost Explorer.
"""
