"""
Output formatters for analysis results.
"""
