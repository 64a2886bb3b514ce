"""
Configuration loading for Cursor Cost Explorer.
"""
