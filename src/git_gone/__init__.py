"""Git branch and tag cleanup tool.

Features:
- Classify local branches as protected, merged, gone, local-only or unmerged
- Find stale tags that exist locally but not on the remote
- Interactive or select-all deletion with risk-tiered confirmation
- Report mode with text, JSON and CSV output
"""

__version__ = "0.3.0"
