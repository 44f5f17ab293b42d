"""Convenience exports for the topic-indexed bias offset sampler."""

from .dyadic_data import Adjacency, DyadicData, load_dyadic_data
from .model_utils import (
    ContractViolationError,
    MissingArtifactError,
    MissingDataError,
    TibModel,
    TibSample,
    allocate_sample,
    load_sample,
    save_sample,
)
from .offsets import conjugate_posterior, sample_offsets, sample_tib_offsets
from .rng_pool import RngPool

__all__ = [
    "Adjacency",
    "DyadicData",
    "load_dyadic_data",
    "ContractViolationError",
    "MissingArtifactError",
    "MissingDataError",
    "TibModel",
    "TibSample",
    "allocate_sample",
    "load_sample",
    "save_sample",
    "conjugate_posterior",
    "sample_offsets",
    "sample_tib_offsets",
    "RngPool",
]
