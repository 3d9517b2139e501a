"""
GxP Validation Analytics Examples

Available Examples:
------------------

dashboard_report.py
    Dashboard and analytics-panel statistics for a small record snapshot,
    including the expiry watch-list and data-quality warnings.

Running Examples:
----------------

    python examples/dashboard_report.py
"""
