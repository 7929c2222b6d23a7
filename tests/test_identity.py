import polars as pl
import pytest

from remote_db import (
    InvalidArgumentError,
    StorageLevels,
    copy_to,
    last_index,
    repartition,
    with_sequential_id,
    with_unique_id,
)
from remote_db._testing import beaver_frame


@pytest.mark.parametrize('partitions', [1, 2, 3, 5])
def test_sequential_ids_ignore_partitioning(conn, engine, partitions: int):
    t = copy_to(conn, beaver_frame(3), 'beaver', repartition=partitions)
    assert t.num_partitions() == partitions

    seq = with_sequential_id(t, id='id', from_=5)

    ids = seq.collect()['id'].to_list()
    assert sorted(ids) == [5, 6, 7]
    assert last_index(seq, 'id') == 7.0


def test_sequential_ids_default_start(conn, engine):
    t = copy_to(conn, beaver_frame(4), 'beaver')

    seq = with_sequential_id(t)
    assert seq.collect()['id'].to_list() == [1, 2, 3, 4]

    with pytest.raises(InvalidArgumentError):
        with_sequential_id(t, from_=1.0)

    with pytest.raises(InvalidArgumentError):
        with_sequential_id(t, id='')


def test_unique_ids_are_stable_once_persisted(conn, engine):
    t = copy_to(conn, beaver_frame(20), 'beaver', repartition=3)
    # rows land on random partitions every time this gets evaluated
    shuffled = repartition(t, 3)

    u = with_unique_id(shuffled, id='uid')

    first = u.collect()
    second = u.collect()
    assert first.equals(second)

    ids = first['uid'].to_list()
    assert first.schema['uid'] == pl.Float64
    assert len(set(ids)) == len(ids) == 20
    assert ids == sorted(ids)

    frame = engine.frame_for(u)
    assert frame.storage_level == StorageLevels.MEMORY_ONLY
    assert frame.evaluations == 1

    assert last_index(u, 'uid') == max(ids)


def test_unique_ids_are_not_sequential(conn, engine):
    t = copy_to(conn, beaver_frame(6), 'beaver', repartition=2)

    ids = with_unique_id(t).collect()['id'].to_list()
    assert ids == [0.0, 1.0, 2.0, float(1 << 33), float((1 << 33) + 1), float((1 << 33) + 2)]


def test_unique_id_storage_level_override(conn, engine):
    t = copy_to(conn, beaver_frame(), 'beaver')

    u = with_unique_id(t, storage_level=StorageLevels.MEMORY_AND_DISK)
    assert engine.frame_for(u).storage_level == StorageLevels.MEMORY_AND_DISK
    assert 'persist' in engine.methods_called()


def test_last_index_with_empty_trailing_partitions(conn, engine):
    t = copy_to(conn, beaver_frame(2), 'beaver', repartition=4)

    seq = with_sequential_id(t, from_=10)
    assert last_index(seq) == 11.0
