import sys
from pathlib import Path

import pytest

np = pytest.importorskip("numpy")
pd = pytest.importorskip("pandas")

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from m3f_tib.dyadic_data import Adjacency, DyadicData, load_dyadic_data
from m3f_tib.model_utils import ContractViolationError, MissingDataError


def test_from_owners_groups_examples_in_ascending_order():
    adj = Adjacency.from_owners([2, 1, 2, 3, 1], num_entities=3)

    assert len(adj) == 3
    assert adj.indptr.tolist() == [0, 2, 4, 5]
    assert adj.examples(0).tolist() == [1, 4]
    assert adj[1].tolist() == [0, 2]
    assert adj[2].tolist() == [3]


def test_from_lists_converts_one_based_indices():
    adj = Adjacency.from_lists([[2, 5], [1, 3], [4]])

    assert adj.indices.tolist() == [1, 4, 0, 2, 3]
    assert adj.lengths.tolist() == [2, 2, 1]


def test_entities_without_examples_get_empty_lists():
    adj = Adjacency.from_owners([1, 1], num_entities=3)

    assert adj.lengths.tolist() == [2, 0, 0]
    assert adj.examples(2).size == 0


def test_owner_outside_entity_range_is_rejected():
    with pytest.raises(ContractViolationError):
        Adjacency.from_owners([1, 4], num_entities=3)


def test_zero_example_index_is_rejected():
    with pytest.raises(ContractViolationError):
        Adjacency.from_lists([[0, 1]])


def test_inconsistent_indptr_is_rejected():
    with pytest.raises(ContractViolationError):
        Adjacency([0, 3], [0, 1])
    with pytest.raises(ContractViolationError):
        Adjacency([0, 2, 1], [0, 1])


def test_from_arrays_builds_both_adjacencies():
    data = DyadicData.from_arrays([1, 2, 1], [3, 1, 1], [4.0, 3.0, 5.0])

    assert data.num_users == 2 and data.num_items == 3
    assert data.num_examples == 3
    assert data.examps_by_user[0].tolist() == [0, 2]
    assert data.examps_by_item[0].tolist() == [1, 2]
    assert data.examps_by_item[1].size == 0


def test_from_arrays_rejects_length_mismatch():
    with pytest.raises(ContractViolationError):
        DyadicData.from_arrays([1, 2], [1], [1.0, 2.0])


def test_from_frame_maps_raw_ids_to_one_based_codes():
    df = pd.DataFrame(
        {"user_id": ["a", "b", "a"], "item_id": ["x", "x", "y"], "rating": [5, 3, 4]}
    )
    data = DyadicData.from_frame(df)

    assert data.users.tolist() == [1, 2, 1]
    assert data.items.tolist() == [1, 1, 2]
    assert data.ratings.tolist() == [5.0, 3.0, 4.0]
    assert data.user_codes == {"a": 1, "b": 2}
    assert data.item_codes == {"x": 1, "y": 2}


def test_from_frame_requires_columns():
    df = pd.DataFrame({"user_id": [1], "item_id": [1]})
    with pytest.raises(MissingDataError):
        DyadicData.from_frame(df)


def test_load_dyadic_data_reads_csv(tmp_path):
    path = tmp_path / "ratings.csv"
    pd.DataFrame(
        {"uid": [10, 20, 10, 30], "mid": [7, 7, 8, 9], "stars": [1.0, 2.0, 3.0, 4.0]}
    ).to_csv(path, index=False)

    data = load_dyadic_data(path, user_col="uid", item_col="mid", rating_col="stars")

    assert data.num_users == 3 and data.num_items == 3
    assert data.examps_by_user[0].tolist() == [0, 2]


def test_load_dyadic_data_missing_file(tmp_path):
    with pytest.raises(MissingDataError):
        load_dyadic_data(tmp_path / "nope.parquet")


def test_load_dyadic_data_unknown_format(tmp_path):
    path = tmp_path / "ratings.txt"
    path.write_text("user_id,item_id,rating\n")
    with pytest.raises(ValueError):
        load_dyadic_data(path)
