"""Math and helper tools for the reliability engines."""

from . import redundancy, weibull
from .memo import FitCache, content_hash
from .history import failure_mechanism_counts, observations_from_history
from .hierarchy import ComponentNode, ComponentTree

__all__ = [
    "redundancy",
    "weibull",
    "FitCache",
    "content_hash",
    "failure_mechanism_counts",
    "observations_from_history",
    "ComponentNode",
    "ComponentTree",
]
