"""
Internal-consistency report for the aggregation table: Cronbach's alpha of
each trait's questions over a batch of response vectors.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from services.profile_engine.aggregation import DEFAULT_TRAIT_MAPPINGS, QUESTION_COUNT, ScoringOverrides

logger = logging.getLogger(__name__)

DEFAULT_ALPHA_THRESHOLD = 0.7


def calculate_cronbach_alpha(data: pd.DataFrame) -> float:
    """
    Cronbach's alpha for a frame whose rows are respondents and columns items.
    Returns NaN with fewer than two items.
    """
    if data.shape[1] < 2:
        return np.nan

    item_variances = data.var(axis=0, ddof=1).sum()
    total_variance = data.sum(axis=1).var(ddof=1)
    n_items = data.shape[1]

    if total_variance == 0:
        return 1.0 if item_variances == 0 else 0.0
    return (n_items / (n_items - 1)) * (1 - item_variances / total_variance)


def responses_frame(batch: Sequence[Any]) -> pd.DataFrame:
    """
    Builds a respondents x questions frame with columns 1..QUESTION_COUNT.

    Accepts plain answer lists, ``{"responses": [...]}`` records or
    ``{"q1": ..., "q2": ...}`` records.
    """
    rows: List[List[Any]] = []
    for record in batch:
        if isinstance(record, dict) and "responses" in record:
            record = record["responses"]
        if isinstance(record, dict):
            record = [record.get(f"q{i}", np.nan) for i in range(1, QUESTION_COUNT + 1)]
        if len(record) != QUESTION_COUNT:
            raise ValueError(f"Each response vector needs {QUESTION_COUNT} answers, got {len(record)}")
        rows.append(list(record))
    frame = pd.DataFrame(rows, columns=range(1, QUESTION_COUNT + 1))
    return frame.apply(pd.to_numeric, errors="coerce")


def load_responses(path: str) -> pd.DataFrame:
    """Reads a batch from CSV (columns q1..q108) or JSON."""
    if path.endswith(".csv"):
        raw = pd.read_csv(path)
        return responses_frame(raw.to_dict(orient="records"))
    if path.endswith(".json"):
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON file: {path}") from e
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of response records in {path}")
        return responses_frame(data)
    raise ValueError("Responses file must be a CSV or JSON file.")


def _native(value: Any) -> Any:
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, (np.integer, np.floating)):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value


def reliability_report(
    responses: pd.DataFrame,
    overrides: Optional[ScoringOverrides] = None,
    threshold: float = DEFAULT_ALPHA_THRESHOLD,
) -> Dict[str, Any]:
    """Alpha per trait plus an overall pass flag. JSON-serialisable."""
    mappings = overrides.mappings() if overrides else DEFAULT_TRAIT_MAPPINGS
    report: Dict[str, Any] = {"alpha_threshold": threshold, "traits": {}, "overall_pass": True}

    for trait, indices in mappings.items():
        items = responses[list(indices)].astype(float).dropna()
        if items.shape[0] < 2 or items.shape[1] < 2:
            alpha = np.nan
        else:
            alpha = calculate_cronbach_alpha(items)
        passed = bool(not np.isnan(alpha) and alpha >= threshold)
        report["traits"][trait.value] = {
            "cronbach_alpha": _native(alpha),
            "pass": passed,
            "item_count": len(indices),
            "respondent_count": int(items.shape[0]),
        }
        if not passed:
            report["overall_pass"] = False

    failing = [name for name, entry in report["traits"].items() if not entry["pass"]]
    if failing:
        logger.warning(f"{len(failing)} traits below alpha threshold {threshold}")
    return report
