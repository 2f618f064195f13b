"""
cwstream - tail a CloudWatch log group through a Cognito identity pool.

Merges the most recently active streams of a log group into one
color-coded console feed and keeps its credentials fresh while it runs.
"""

__version__ = "0.1.0"
