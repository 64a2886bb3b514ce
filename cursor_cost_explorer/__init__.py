"""
Cursor Cost Explorer.

Turns Cursor usage exports into cost, efficiency and savings reports.
"""

__version__ = "1.0.0"

from .core.engine import analyze, export_json
from .core.errors import CostExplorerError, LogicError, ValidationError

__all__ = [
    "analyze",
    "export_json",
    "CostExplorerError",
    "LogicError",
    "ValidationError",
    "__version__",
]
