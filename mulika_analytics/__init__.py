"""
Mulika analytics engine.

Turns a read-only batch of corruption reports into derived intelligence:
behavioral clusters, flagged anomalies, and per-text linguistic features.
"""

__version__ = "0.1.0"
