"""One independent numpy Generator per sampler worker."""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional

import numpy as np

LOGGER = logging.getLogger(__name__)


class RngPool:
    """
    Caller-owned pool of random streams, one per worker thread.

    Streams are spawned from a single SeedSequence, so a pool built with the
    same seed and size always reproduces the same draws. A Generator is not
    safe to share between threads; the sampler hands stream `w` to worker
    `w` only.
    """

    def __init__(self, num_workers: int = 1, seed: Optional[int] = None):
        if num_workers < 1:
            raise ValueError("RngPool needs at least one worker")

        self.seed = seed
        self._seq = np.random.SeedSequence(seed)
        self.generators: List[np.random.Generator] = [
            np.random.default_rng(child) for child in self._seq.spawn(num_workers)
        ]
        LOGGER.debug("RngPool ready: %d streams, seed=%s", num_workers, seed)

    def __len__(self) -> int:
        return len(self.generators)

    def __getitem__(self, worker: int) -> np.random.Generator:
        return self.generators[worker]

    def __iter__(self) -> Iterator[np.random.Generator]:
        return iter(self.generators)
