import pytest

from validation_portal.core.errors import PartitionKeyError
from validation_portal.partitions.naming import (
    PartitionFamily,
    PartitionKey,
    stats_partition,
    submissions_partition,
)


def test_table_names_per_family():
    assert submissions_partition("aXk9").table_name == "surveys_flags_aXk9"
    assert stats_partition("aXk9").table_name == "enumerators_stats_aXk9"
    assert str(submissions_partition("A_1")) == "surveys_flags_A_1"


@pytest.mark.parametrize(
    "asset_id",
    ["", "a-b", "abc\n", "x; DROP TABLE users", "a b", "a.b", "ü", "a" * 65, None, 42],
)
def test_rejects_unsafe_asset_ids(asset_id):
    with pytest.raises(PartitionKeyError):
        PartitionKey(PartitionFamily.SUBMISSIONS, asset_id)


def test_key_error_is_a_value_error():
    with pytest.raises(ValueError):
        stats_partition("../etc")


def test_keys_are_hashable_and_comparable():
    assert submissions_partition("abc") == submissions_partition("abc")
    assert submissions_partition("abc") != stats_partition("abc")
    assert len({submissions_partition("abc"), submissions_partition("abc")}) == 1
