"""
Utility package: subprocess execution, Azure name sanitization and argument checks.
"""

import util.cmd
import util.error_handling
import util.sanitization

__all__ = ["cmd", "error_handling", "sanitization"]
