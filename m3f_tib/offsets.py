"""
offsets.py
Gibbs step for the topic-indexed bias offsets c (users) and d (items).

Every user u owns an offset vector c[u] with one entry per item topic, and
every item j owns d[j] with one entry per user topic. Given the current
residuals and topic labels, each coordinate has a conjugate Gaussian
conditional:

    precision = 1/sigmaSqd0 + n_i / sigmaSqd
    mean      = (c0/sigmaSqd0 + s_i/sigmaSqd) / precision

where n_i counts the entity's examples whose opposite-side topic is i and
s_i sums their residuals (less the partner's offset at the entity's own
topic). `sample_offsets` is written from the user side; swapping the roles
of users and items samples d.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence, Tuple

import numpy as np

from config.settings import settings
from .dyadic_data import Adjacency, DyadicData
from .model_utils import ContractViolationError, TibModel, TibSample

LOGGER = logging.getLogger(__name__)


def conjugate_posterior(
    sums,
    counts,
    inv_sigma_sqd: float,
    inv_sigma_sqd0: float,
    prior_mean: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """Posterior (mean, variance) of each offset coordinate given its bucket stats."""
    variance = 1.0 / (inv_sigma_sqd0 + np.asarray(counts) * inv_sigma_sqd)
    mean = (prior_mean * inv_sigma_sqd0 + np.asarray(sums) * inv_sigma_sqd) * variance
    return mean, variance


class _OffsetScratch:
    """Per-worker bucket sums and counts, reused across that worker's entities."""

    def __init__(self, num_topics: int):
        self.sums = np.zeros(num_topics, dtype=np.float64)
        self.counts = np.zeros(num_topics, dtype=np.int64)

    def reset(self):
        self.sums.fill(0.0)
        self.counts.fill(0)


def _check_range(name, values, upper):
    if values.size and (values.min() < 1 or values.max() > upper):
        raise ContractViolationError(f"{name} must lie in [1, {upper}]")


def _check_inputs(
    target_ids, cross_ids, adjacency, k_target_cross, k_cross_target,
    num_targets, inv_sigma_sqd, inv_sigma_sqd0, target_offsets,
    cross_offsets, target_topics, cross_topics, resids, rngs,
):
    num_examples = resids.size
    for name, arr in [
        ("target ids", target_ids),
        ("cross ids", cross_ids),
        ("target topics", target_topics),
        ("cross topics", cross_topics),
    ]:
        if arr.size != num_examples:
            raise ContractViolationError(
                f"{name} has {arr.size} entries, expected one per example ({num_examples})"
            )

    if not (inv_sigma_sqd > 0 and inv_sigma_sqd0 > 0):
        raise ContractViolationError("inverse variances must be strictly positive")
    if len(rngs) < 1:
        raise ContractViolationError("need at least one random stream")

    if not isinstance(target_offsets, np.ndarray) or target_offsets.shape != (num_targets, k_target_cross):
        raise ContractViolationError(
            f"target offsets must be an array of shape ({num_targets}, {k_target_cross})"
        )
    if not np.issubdtype(target_offsets.dtype, np.floating):
        raise ContractViolationError("target offsets must be a float array")
    if len(adjacency) != num_targets:
        raise ContractViolationError(
            f"adjacency covers {len(adjacency)} entities, expected {num_targets}"
        )

    indices = adjacency.indices
    if indices.size and (indices.min() < 0 or indices.max() >= num_examples):
        raise ContractViolationError("adjacency references an example out of range")

    # each list may only hold examples owned by that entity
    owners = np.repeat(np.arange(1, num_targets + 1), adjacency.lengths)
    if not np.array_equal(target_ids[indices], owners):
        raise ContractViolationError("adjacency lists an example under the wrong entity")

    _check_range("cross topic labels", cross_topics, k_target_cross)
    if k_cross_target > 0:
        if cross_offsets.ndim != 2 or cross_offsets.shape[1] != k_cross_target:
            raise ContractViolationError(
                f"cross offsets must have {k_cross_target} columns"
            )
        _check_range("target topic labels", target_topics, k_cross_target)
        _check_range("cross ids", cross_ids, cross_offsets.shape[0])


def sample_offsets(
    target_ids,
    cross_ids,
    adjacency: Adjacency,
    k_target_cross: int,
    k_cross_target: int,
    num_targets: int,
    inv_sigma_sqd: float,
    inv_sigma_sqd0: float,
    prior_mean: float,
    target_offsets: np.ndarray,
    cross_offsets: np.ndarray,
    target_topics,
    cross_topics,
    resids,
    rngs: Sequence[np.random.Generator],
    validate: bool = True,
) -> None:
    """
    Redraw every row of `target_offsets` in place.

    Written from the user side: targets are users, `k_target_cross` is KM
    (length of each output row), `k_cross_target` is KU (columns of the
    item offsets `cross_offsets`), `target_topics` is zU and
    `cross_topics` is zM. Ids and labels are 1-based; adjacency is
    0-based. Entities are split into one contiguous chunk per generator in
    `rngs`, and chunk w is drawn on its own thread from `rngs[w]`.
    """
    if k_target_cross <= 0 or num_targets == 0:
        return

    target_ids = np.asarray(target_ids, dtype=np.int64)
    cross_ids = np.asarray(cross_ids, dtype=np.int64)
    target_topics = np.asarray(target_topics, dtype=np.int64)
    cross_topics = np.asarray(cross_topics, dtype=np.int64)
    resids = np.asarray(resids, dtype=np.float64)
    cross_offsets = np.asarray(cross_offsets)

    if validate:
        _check_inputs(
            target_ids, cross_ids, adjacency, k_target_cross, k_cross_target,
            num_targets, inv_sigma_sqd, inv_sigma_sqd0, target_offsets,
            cross_offsets, target_topics, cross_topics, resids, rngs,
        )

    def run_chunk(entities, rng):
        scratch = _OffsetScratch(k_target_cross)
        for t in entities:
            scratch.reset()

            # Sufficient stats over the entity's examples
            examps = adjacency.examples(t)
            if examps.size:
                buckets = cross_topics[examps] - 1
                vals = resids[examps]
                if k_cross_target > 0:
                    vals = vals - cross_offsets[cross_ids[examps] - 1, target_topics[examps] - 1]
                np.add.at(scratch.sums, buckets, vals)
                np.add.at(scratch.counts, buckets, 1)

            mean, variance = conjugate_posterior(
                scratch.sums, scratch.counts, inv_sigma_sqd, inv_sigma_sqd0, prior_mean
            )
            target_offsets[t] = rng.normal(mean, np.sqrt(variance))

    chunks = np.array_split(np.arange(num_targets), len(rngs))
    LOGGER.debug(
        "Sampling %d x %d offsets on %d worker(s)",
        num_targets, k_target_cross, len(chunks),
    )

    if len(chunks) == 1:
        run_chunk(chunks[0], rngs[0])
        return

    with ThreadPoolExecutor(max_workers=len(chunks)) as pool:
        futures = [pool.submit(run_chunk, chunk, rng) for chunk, rng in zip(chunks, rngs)]
        for fut in futures:
            # re-raises any worker failure
            fut.result()


def sample_tib_offsets(
    data: DyadicData,
    model: TibModel,
    samp: TibSample,
    zU,
    zM,
    resids,
    rngs: Sequence[np.random.Generator],
    sample_user_params: bool = True,
    sample_item_params: bool = True,
    validate: Optional[bool] = None,
) -> TibSample:
    """
    Gibbs-sample the c and d offsets of `samp` in place.

    c is drawn first; d is then drawn against the c just produced. A side
    is skipped when its gate is off or its offset length (KM for c, KU
    for d) is 0, and its array is left untouched. Whatever the other side
    currently holds is used as-is, even when that side was not refreshed.
    """
    if validate is None:
        validate = settings.VALIDATE_INPUTS

    LOGGER.debug("Running TIB offset step: KU=%d KM=%d", model.KU, model.KM)

    # Sample c offsets
    if model.KM > 0 and sample_user_params:
        sample_offsets(
            data.users, data.items, data.examps_by_user, model.KM, model.KU,
            model.numUsers, model.invSigmaSqd, model.invSigmaSqd0, model.c0,
            samp.c, samp.d, zU, zM, resids, rngs, validate=validate,
        )
    else:
        LOGGER.debug("User offsets skipped")

    # Sample d offsets
    if model.KU > 0 and sample_item_params:
        sample_offsets(
            data.items, data.users, data.examps_by_item, model.KU, model.KM,
            model.numItems, model.invSigmaSqd, model.invSigmaSqd0, model.d0,
            samp.d, samp.c, zM, zU, resids, rngs, validate=validate,
        )
    else:
        LOGGER.debug("Item offsets skipped")

    return samp


__all__ = [
    "conjugate_posterior",
    "sample_offsets",
    "sample_tib_offsets",
]
