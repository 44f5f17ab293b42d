"""
dyadic_data.py
Dyadic (user x item) rating data for the TIB sampler.

Examples are the rows of a ratings table. Users and items carry 1-based ids
(the host convention); every entity also owns the ordered list of examples
that reference it. Those ragged lists are stored CSR-style: `indptr` marks
where each entity's run of 0-based example indices starts in `indices`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence

import numpy as np
import pandas as pd
import scipy.sparse as sp

from .model_utils import ContractViolationError, MissingDataError

LOGGER = logging.getLogger(__name__)


class Adjacency:
    """Per-entity ordered lists of 0-based example indices."""

    def __init__(self, indptr, indices):
        self.indptr = np.asarray(indptr, dtype=np.int64)
        self.indices = np.asarray(indices, dtype=np.int64)

        if self.indptr.ndim != 1 or self.indptr.size == 0 or self.indptr[0] != 0:
            raise ContractViolationError("indptr must be 1-D and start at 0")
        if np.any(np.diff(self.indptr) < 0):
            raise ContractViolationError("indptr must be non-decreasing")
        if self.indptr[-1] != self.indices.size:
            raise ContractViolationError(
                f"indptr ends at {self.indptr[-1]} but there are {self.indices.size} indices"
            )

    def __len__(self) -> int:
        return self.indptr.size - 1

    def examples(self, entity: int) -> np.ndarray:
        return self.indices[self.indptr[entity]:self.indptr[entity + 1]]

    __getitem__ = examples

    @property
    def lengths(self) -> np.ndarray:
        return np.diff(self.indptr)

    @classmethod
    def from_lists(cls, lists: Iterable[Sequence[int]]) -> "Adjacency":
        """Build from 1-based example-index lists, one list per entity."""
        lists = [np.asarray(lst, dtype=np.int64).ravel() for lst in lists]
        indptr = np.zeros(len(lists) + 1, dtype=np.int64)
        if lists:
            indptr[1:] = np.cumsum([lst.size for lst in lists])
            flat = np.concatenate(lists)
        else:
            flat = np.zeros(0, dtype=np.int64)

        if flat.size and flat.min() < 1:
            raise ContractViolationError("example indices are 1-based; found an index < 1")

        return cls(indptr, flat - 1)

    @classmethod
    def from_owners(cls, owner_ids, num_entities: int) -> "Adjacency":
        """
        Build from the 1-based owning entity of every example.
        Each entity's examples come out in ascending example order.
        """
        owners = np.asarray(owner_ids, dtype=np.int64).ravel()
        num_examples = owners.size

        if num_examples and (owners.min() < 1 or owners.max() > num_entities):
            raise ContractViolationError(
                f"entity ids must lie in [1, {num_entities}]"
            )

        # entity x example incidence matrix; CSR rows are the adjacency lists
        mat = sp.coo_matrix(
            (np.ones(num_examples, dtype=np.int8), (owners - 1, np.arange(num_examples))),
            shape=(num_entities, num_examples),
        ).tocsr()
        mat.sort_indices()

        return cls(mat.indptr, mat.indices)


@dataclass
class DyadicData:
    users: np.ndarray
    items: np.ndarray
    ratings: np.ndarray
    num_users: int
    num_items: int
    examps_by_user: Adjacency
    examps_by_item: Adjacency
    user_codes: Dict = field(default_factory=dict)
    item_codes: Dict = field(default_factory=dict)

    @property
    def num_examples(self) -> int:
        return self.users.size

    @classmethod
    def from_arrays(
        cls,
        users,
        items,
        ratings=None,
        num_users: Optional[int] = None,
        num_items: Optional[int] = None,
    ) -> "DyadicData":
        users = np.asarray(users, dtype=np.int64).ravel()
        items = np.asarray(items, dtype=np.int64).ravel()
        if ratings is None:
            ratings = np.zeros(users.size, dtype=np.float64)
        ratings = np.asarray(ratings, dtype=np.float64).ravel()

        if not (users.size == items.size == ratings.size):
            raise ContractViolationError(
                f"users / items / ratings lengths differ: "
                f"{users.size}, {items.size}, {ratings.size}"
            )

        if num_users is None:
            num_users = int(users.max()) if users.size else 0
        if num_items is None:
            num_items = int(items.max()) if items.size else 0

        return cls(
            users=users,
            items=items,
            ratings=ratings,
            num_users=num_users,
            num_items=num_items,
            examps_by_user=Adjacency.from_owners(users, num_users),
            examps_by_item=Adjacency.from_owners(items, num_items),
        )

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        user_col: str = "user_id",
        item_col: str = "item_id",
        rating_col: str = "rating",
    ) -> "DyadicData":
        """Map raw user / item ids to 1-based codes in order of first appearance."""
        for col in (user_col, item_col, rating_col):
            if col not in df.columns:
                raise MissingDataError(f"Ratings table has no column '{col}'")

        u_codes = {u: i + 1 for i, u in enumerate(df[user_col].unique())}
        i_codes = {t: i + 1 for i, t in enumerate(df[item_col].unique())}

        data = cls.from_arrays(
            df[user_col].map(u_codes).to_numpy(),
            df[item_col].map(i_codes).to_numpy(),
            df[rating_col].to_numpy(dtype=np.float64),
            num_users=len(u_codes),
            num_items=len(i_codes),
        )
        data.user_codes = u_codes
        data.item_codes = i_codes
        return data


def load_dyadic_data(
    path: Path | str,
    user_col: str = "user_id",
    item_col: str = "item_id",
    rating_col: str = "rating",
) -> DyadicData:
    path = Path(path)

    if not path.exists():
        raise MissingDataError(f"Ratings table not found: {path}")

    if path.suffix == ".parquet":
        df = pd.read_parquet(path)
    elif path.suffix == ".csv":
        df = pd.read_csv(path)
    else:
        raise ValueError("Ratings must be parquet or csv")

    data = DyadicData.from_frame(df, user_col, item_col, rating_col)
    LOGGER.info(
        "Loaded %d ratings (%d users, %d items) from %s",
        data.num_examples, data.num_users, data.num_items, path,
    )
    return data


__all__ = [
    "Adjacency",
    "DyadicData",
    "load_dyadic_data",
]
