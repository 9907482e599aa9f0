import json

import numpy as np
import pandas as pd
import pytest

from services.profile_engine.aggregation import QUESTION_COUNT
from services.profile_engine.reliability import (
    calculate_cronbach_alpha,
    load_responses,
    reliability_report,
    responses_frame,
)
from services.profile_engine.taxonomy import Trait


def _consistent_batch():
    """Each respondent gives the same answer everywhere, so items agree perfectly."""
    return [[float(value)] * QUESTION_COUNT for value in (2, 4, 5, 7, 9, 10)]


def test_cronbach_alpha_known_values():
    perfect = pd.DataFrame({"a": [1, 2, 3, 4], "b": [1, 2, 3, 4], "c": [1, 2, 3, 4]})
    assert calculate_cronbach_alpha(perfect) == pytest.approx(1.0)
    assert np.isnan(calculate_cronbach_alpha(perfect[["a"]]))
    flat = pd.DataFrame({"a": [3, 3, 3], "b": [3, 3, 3]})
    assert calculate_cronbach_alpha(flat) == 1.0


def test_responses_frame_accepts_record_shapes():
    plain = [5.0] * QUESTION_COUNT
    wrapped = {"responses": [6.0] * QUESTION_COUNT}
    keyed = {f"q{i}": 7.0 for i in range(1, QUESTION_COUNT + 1)}
    frame = responses_frame([plain, wrapped, keyed])
    assert frame.shape == (3, QUESTION_COUNT)
    assert list(frame.columns) == list(range(1, QUESTION_COUNT + 1))
    assert frame[1].tolist() == [5.0, 6.0, 7.0]


def test_responses_frame_rejects_short_rows():
    with pytest.raises(ValueError, match="needs 108 answers"):
        responses_frame([[5.0] * 10])


def test_consistent_answers_pass():
    report = reliability_report(responses_frame(_consistent_batch()))
    assert report["overall_pass"] is True
    assert set(report["traits"]) == {trait.value for trait in Trait}
    entry = report["traits"]["Structured"]
    assert entry["cronbach_alpha"] == pytest.approx(1.0)
    assert entry["item_count"] == 6
    assert entry["respondent_count"] == 6
    json.dumps(report)


def test_random_answers_fail():
    rng = np.random.default_rng(0)
    frame = responses_frame(rng.integers(1, 11, size=(300, QUESTION_COUNT)).astype(float).tolist())
    report = reliability_report(frame)
    assert report["overall_pass"] is False
    assert report["traits"]["Stoic"]["pass"] is False


def test_single_respondent_has_no_alpha():
    report = reliability_report(responses_frame([[5.0] * QUESTION_COUNT]))
    entry = report["traits"]["Stoic"]
    assert entry["cronbach_alpha"] is None
    assert entry["pass"] is False


def test_load_responses_from_json_and_csv(tmp_path):
    json_path = tmp_path / "batch.json"
    json_path.write_text(json.dumps([{"responses": row} for row in _consistent_batch()]))
    assert load_responses(str(json_path)).shape == (6, QUESTION_COUNT)

    csv_path = tmp_path / "batch.csv"
    columns = [f"q{i}" for i in range(1, QUESTION_COUNT + 1)]
    pd.DataFrame(_consistent_batch(), columns=columns).to_csv(csv_path, index=False)
    frame = load_responses(str(csv_path))
    assert frame.shape == (6, QUESTION_COUNT)
    assert frame[108].tolist() == [2.0, 4.0, 5.0, 7.0, 9.0, 10.0]


def test_load_responses_errors(tmp_path):
    with pytest.raises(ValueError, match="CSV or JSON"):
        load_responses(str(tmp_path / "batch.xlsx"))

    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ValueError, match="Invalid JSON"):
        load_responses(str(bad))

    mapping = tmp_path / "mapping.json"
    mapping.write_text(json.dumps({"responses": []}))
    with pytest.raises(ValueError, match="Expected a list"):
        load_responses(str(mapping))
