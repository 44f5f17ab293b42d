"""
model_utils.py
Model and sample-state helpers for the topic-indexed bias (TIB) sampler.

This module handles:
  • Hyperparameters of the TIB model (topic counts, variances, prior means)
  • The mutable Gibbs sample holding the c / d offset arrays
  • Saving / loading samples as joblib artifacts
  • The exceptions shared by the rest of the package
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import joblib
import numpy as np
from pydantic import BaseModel, Field

from config.settings import settings

LOGGER = logging.getLogger(__name__)

# ─────────────────────────────────────────────
# PATHS
# ─────────────────────────────────────────────

DATA_DIR = Path(settings.DATA_DIR)
ARTIFACT_DIR = Path(settings.ARTIFACT_DIR)

# ─────────────────────────────────────────────
# CUSTOM EXCEPTIONS
# ─────────────────────────────────────────────

class ContractViolationError(RuntimeError):
    """Raised when sampler inputs break a precondition (shape, label or id range)."""
    pass

class MissingDataError(RuntimeError):
    """Raised when a ratings table is missing."""
    pass

class MissingArtifactError(RuntimeError):
    """Raised when a saved sample artifact is missing."""
    pass


# ─────────────────────────────────────────────
# HYPERPARAMETERS
# ─────────────────────────────────────────────

class TibModel(BaseModel):
    """
    Hyperparameters of the topic-indexed bias model.

    KU / KM are the user-side and item-side topic counts. A user's offset
    vector has one entry per item topic (KM) and an item's has one entry
    per user topic (KU); a count of 0 switches that side's offsets off.
    """

    KU: int = Field(0, ge=0)
    KM: int = Field(0, ge=0)
    numUsers: int = Field(0, ge=0)
    numItems: int = Field(0, ge=0)
    sigmaSqd: float = Field(1.0, gt=0)
    sigmaSqd0: float = Field(1.0, gt=0)
    c0: float = 0.0
    d0: float = 0.0

    @property
    def invSigmaSqd(self) -> float:
        return 1.0 / self.sigmaSqd

    @property
    def invSigmaSqd0(self) -> float:
        return 1.0 / self.sigmaSqd0


# ─────────────────────────────────────────────
# SAMPLE STATE
# ─────────────────────────────────────────────

@dataclass
class TibSample:
    # c: (numUsers, KM), d: (numItems, KU)
    c: np.ndarray
    d: np.ndarray


def allocate_sample(model: TibModel) -> TibSample:
    """Zero-filled offsets with the shapes the sampler expects."""
    return TibSample(
        c=np.zeros((model.numUsers, model.KM), dtype=np.float64),
        d=np.zeros((model.numItems, model.KU), dtype=np.float64),
    )


def _resolve_path(path):
    return Path(path).expanduser().resolve()


def ensure_directory(path):
    p = _resolve_path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def save_sample(samp: TibSample, path: Path | str = ARTIFACT_DIR / "tib_sample.joblib"):
    artifact = _resolve_path(path)
    ensure_directory(artifact.parent)
    joblib.dump({"c": samp.c, "d": samp.d}, artifact)

    LOGGER.info("TIB sample saved → %s", artifact)
    return artifact


def load_sample(path: Path | str = ARTIFACT_DIR / "tib_sample.joblib") -> TibSample:
    artifact = _resolve_path(path)
    if not artifact.exists():
        raise MissingArtifactError(f"Sample artifact not found: {artifact}")

    data = joblib.load(artifact)
    return TibSample(c=np.asarray(data["c"]), d=np.asarray(data["d"]))


__all__ = [
    "ContractViolationError",
    "MissingDataError",
    "MissingArtifactError",
    "TibModel",
    "TibSample",
    "allocate_sample",
    "ensure_directory",
    "save_sample",
    "load_sample",
    "DATA_DIR",
    "ARTIFACT_DIR",
]
