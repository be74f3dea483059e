"""Failure history helpers.

Turns failure history records (as the storage layer hands them over) into
fit-ready observations. Records without a usable time are dropped rather
than rejected, matching how history exports usually arrive.
"""

from typing import Iterable, Optional, Union

import pandas as pd

from reliability_engine.errors import ValidationError


def _as_frame(records: Union[pd.DataFrame, Iterable[dict]]) -> pd.DataFrame:
    if isinstance(records, pd.DataFrame):
        return records
    return pd.DataFrame(list(records))


def observations_from_history(
    records: Union[pd.DataFrame, Iterable[dict]],
    time_column: str = "tbf_days",
    censored_column: Optional[str] = None,
) -> tuple[list[float], list[bool]]:
    """Extract positive failure times and censoring flags.

    Args:
        records: DataFrame or iterable of history dicts
        time_column: Column holding TBF/TTF values (e.g. 'tbf_days' or
            'operating_hours_at_failure')
        censored_column: Optional boolean column marking suspensions

    Returns:
        (observations, censored) sorted ascending by time
    """
    frame = _as_frame(records)
    if frame.empty:
        return [], []
    if time_column not in frame.columns:
        raise ValidationError(
            f"Column '{time_column}' not found in failure history",
            field="time_column",
            value=time_column,
        )

    times = pd.to_numeric(frame[time_column], errors="coerce")
    usable = frame.loc[times.notna() & (times > 0)].copy()
    usable["_time"] = times[usable.index].astype(float)

    if censored_column and censored_column in usable.columns:
        usable["_censored"] = usable[censored_column].fillna(False).astype(bool)
    else:
        usable["_censored"] = False

    usable = usable.sort_values(["_time", "_censored"], kind="mergesort")
    return usable["_time"].tolist(), usable["_censored"].tolist()


def failure_mechanism_counts(
    records: Union[pd.DataFrame, Iterable[dict]],
    column: str = "failure_mechanism",
) -> dict[str, int]:
    """Count occurrences of each failure mechanism ('Unknown' when blank)."""
    frame = _as_frame(records)
    if frame.empty:
        return {}
    if column not in frame.columns:
        return {"Unknown": len(frame)}
    mechanisms = frame[column].fillna("Unknown").replace("", "Unknown")
    return {str(k): int(v) for k, v in mechanisms.value_counts().items()}
