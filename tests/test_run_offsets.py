import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")
pd = pytest.importorskip("pandas")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from m3f_tib import run_offsets
from m3f_tib.model_utils import load_sample


def test_main_runs_sweeps_and_saves_sample(tmp_path, monkeypatch):
    monkeypatch.setattr(run_offsets.settings, "LOG_DIR", str(tmp_path / "logs"))

    ratings = tmp_path / "ratings.csv"
    pd.DataFrame(
        {
            "user_id": [1, 1, 2, 3, 3],
            "item_id": ["a", "b", "b", "a", "c"],
            "rating": [4.0, 3.0, 5.0, 2.0, 4.5],
        }
    ).to_csv(ratings, index=False)
    out = tmp_path / "samp.joblib"

    samp = run_offsets.main([
        "--ratings", str(ratings),
        "--sweeps", "2",
        "--KU", "2",
        "--KM", "3",
        "--threads", "2",
        "--out", str(out),
    ])

    assert samp.c.shape == (3, 3)
    assert samp.d.shape == (3, 2)
    assert np.isfinite(samp.c).all() and np.isfinite(samp.d).all()
    assert np.array_equal(load_sample(out).c, samp.c)


def test_main_respects_item_gate(tmp_path, monkeypatch):
    monkeypatch.setattr(run_offsets.settings, "LOG_DIR", str(tmp_path / "logs"))

    ratings = tmp_path / "ratings.csv"
    pd.DataFrame(
        {"user_id": [1, 2], "item_id": [1, 2], "rating": [1.0, 2.0]}
    ).to_csv(ratings, index=False)

    samp = run_offsets.main([
        "--ratings", str(ratings),
        "--sweeps", "1",
        "--no-items",
        "--out", str(tmp_path / "samp.joblib"),
    ])

    assert not samp.d.any()
    assert samp.c.any()
