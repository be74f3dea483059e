"""Reliability decision-and-scoring engine.

FMECA criticality scoring, the RCM decision tree and a Weibull RAM model.
Callers normally go through ``reliability_engine.api``.
"""

__version__ = "0.1.0"
