"""Base engine class with common functionality."""

from datetime import datetime
from typing import Any, Optional

from reliability_engine.schemas.policy import EnginePolicy


class BaseEngine:
    """Base class for all reliability engines.

    Engines are cheap to construct and hold nothing between calls except
    their policy and a diagnostic execution log. Create one per request when
    the log matters; share one freely when it doesn't.
    """

    name: str = "BaseEngine"
    description: str = "Base engine class"

    def __init__(
        self,
        policy: Optional[EnginePolicy] = None,
        verbose: bool = False,
    ):
        if policy is None:
            from config.policies.loader import get_policy
            policy = get_policy()
        self.policy = policy
        self.verbose = verbose
        self._execution_log: list[dict] = []

    def log(self, message: str, level: str = "info") -> None:
        """Log a message."""
        entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "engine": self.name,
            "level": level,
            "message": message,
        }
        self._execution_log.append(entry)
        if self.verbose:
            print(f"[{self.name}] {message}")

    def get_execution_log(self) -> list[dict]:
        """Get the execution log for this engine."""
        return self._execution_log.copy()

    def reset_execution_log(self) -> None:
        """Clear the execution log for a new run."""
        self._execution_log = []

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "policy": self.policy.name,
            "policy_version": self.policy.version,
        }
