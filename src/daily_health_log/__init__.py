"""
Daily Health Log - Personal daily health tracking and insights.

Keeps one record per calendar day with meals and body metrics, fills missing
metrics from exported health samples, and summarizes trends over time.
"""

__version__ = "0.1.0"
