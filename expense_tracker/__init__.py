"""
Expense Tracker - Source Package

Personal expense tracking with per-day running totals and a year-long
spending heatmap.

DESIGN PRINCIPLES:
1. Amounts are integer minor units, never floats
2. Day totals are best-effort and may go stale on partial failure
3. The UI reacts immediately; the cache reconciles with storage later
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
