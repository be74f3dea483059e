"""Load and validate engine policies from YAML files."""

from pathlib import Path
from typing import Optional
import pydantic
import yaml

from reliability_engine.errors import ValidationError
from reliability_engine.schemas.policy import EnginePolicy


DEFAULT_POLICY_PATH = Path(__file__).parent / "default.yaml"

_policy: Optional[EnginePolicy] = None


def load_policy(file_path: str | Path) -> EnginePolicy:
    """Load a single engine policy from a YAML file."""
    with open(file_path, 'r') as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValidationError(
            f"Policy file {file_path} must contain a mapping",
            field="policy_path",
            value=str(file_path),
        )

    try:
        return EnginePolicy(**data)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Invalid policy {file_path}: {e.errors()[0]['msg']}",
            field="policy_path",
            value=str(file_path),
        ) from e


def get_policy() -> EnginePolicy:
    """Get the configured engine policy (singleton)."""
    global _policy
    if _policy is None:
        from config.settings import get_settings
        policy_path = get_settings().policy_path or DEFAULT_POLICY_PATH
        _policy = load_policy(policy_path)
    return _policy
