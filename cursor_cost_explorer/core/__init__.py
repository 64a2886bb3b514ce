"""
Core modules for Cursor Cost Explorer.

This package contains the analysis engine: cost aggregation, model
efficiency scoring, plan optimization, cache efficiency, usage patterns
and savings opportunities.
"""
