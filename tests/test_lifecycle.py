import pytest

from remote_db import (
    InvalidArgumentError,
    InvocationError,
    PartitionSpec,
    StorageLevels,
    UnsupportedVersionError,
    broadcast,
    checkpoint,
    coalesce,
    copy_to,
    num_partitions,
    persist,
    repartition,
    sample,
    sort,
)
from remote_db._testing import beaver_frame, local_connection


def test_persist_levels(conn, engine):
    t = copy_to(conn, beaver_frame(), 'beaver', memory=False)

    default = persist(t)
    assert default.name is not None
    assert engine.frame_for(default).storage_level == StorageLevels.MEMORY_AND_DISK

    disk = persist(t, StorageLevels.DISK_ONLY)
    assert engine.frame_for(disk).storage_level == StorageLevels.DISK_ONLY

    with pytest.raises(InvalidArgumentError):
        persist(t, '')

    with pytest.raises(InvocationError, match='Unknown storage level'):
        persist(t, 'IN_THE_CLOUD')


def test_checkpoint(conn, engine):
    t = copy_to(conn, beaver_frame(), 'beaver', memory=False)
    shuffled = repartition(t, 2)

    eager = checkpoint(shuffled)
    assert engine.frame_for(eager).evaluations == 0
    first = eager.collect()
    assert eager.collect().equals(first)

    lazy = checkpoint(shuffled, eager=False)
    assert engine.frame_for(lazy).evaluations == 0
    first = lazy.collect()
    assert lazy.collect().equals(first)
    assert engine.frame_for(lazy).evaluations == 1

    with pytest.raises(InvalidArgumentError):
        checkpoint(t, eager='yes')


def test_repartition_by_count(conn, engine):
    t = copy_to(conn, beaver_frame(10), 'beaver')

    r = repartition(t, 3)
    assert num_partitions(r) == 3
    assert r.count() == 10
    assert sorted(r.collect()['time']) == sorted(t.collect()['time'])

    # 0 keeps the current layout
    assert num_partitions(repartition(t)) == num_partitions(t)

    with pytest.raises(InvalidArgumentError):
        repartition(t, -1)


def test_repartition_by_columns():
    conn, engine = local_connection(version='2.0.0')
    t = copy_to(conn, beaver_frame(12), 'beaver')

    r = repartition(t, PartitionSpec(count=2, by_columns=('activ',)))
    parts = engine.partitions_of(r)
    assert len(parts) == 2
    # rows sharing a key land on the same partition
    for key in (0, 1):
        owners = [i for i, p in enumerate(parts) if key in p['activ'].to_list()]
        assert len(owners) == 1
    assert sum(p.height for p in parts) == 12

    same = repartition(t, 2, by_columns=['activ'])
    assert num_partitions(same) == 2

    with pytest.raises(InvalidArgumentError):
        repartition(t, PartitionSpec(count=2), by_columns=['activ'])


def test_repartition_single_column_name(conn, engine):
    t = copy_to(conn, beaver_frame(12), 'beaver')

    r = repartition(t, 2, by_columns='day')
    assert num_partitions(r) == 2

    calls = [
        c for c in engine.calls
        if c.target == conn.options.repartition_class
    ]
    assert calls[-1].args[-1] == ['day']

    spec = PartitionSpec(count=3, by_columns='activ').validate()
    assert spec.by_columns == ('activ',)

    keyed = repartition(t, PartitionSpec(by_columns='activ'))
    assert keyed.count() == 12
    for key in (0, 1):
        owners = [
            i for i, p in enumerate(engine.partitions_of(keyed))
            if key in p['activ'].to_list()
        ]
        assert len(owners) == 1


def test_repartition_by_columns_needs_new_engine():
    conn, engine = local_connection(version='1.6.3')
    t = copy_to(conn, beaver_frame(), 'beaver')

    with pytest.raises(UnsupportedVersionError, match='1.6.3'):
        repartition(t, 2, by_columns=['activ'])

    # plain count partitioning still goes through the frame method
    r = repartition(t, 2)
    assert num_partitions(r) == 2
    assert conn.options.repartition_class not in [c.target for c in engine.calls]


def test_coalesce(conn, engine):
    t = copy_to(conn, beaver_frame(), 'beaver', repartition=4)

    c = coalesce(t, 2)
    assert num_partitions(c) == 2
    assert c.collect().equals(t.collect())

    for bad in (0, -3, 1.5, True):
        with pytest.raises(InvalidArgumentError, match='must be positive'):
            coalesce(t, bad)


def test_broadcast(conn, engine):
    t = copy_to(conn, beaver_frame(), 'beaver')

    b = broadcast(t)
    assert engine.frame_for(b).broadcast
    assert engine.frame_for(b).evaluations == 0
    assert b.name is not None and b.name != t.name


def test_sort(conn, engine):
    t = copy_to(conn, beaver_frame(7), 'beaver')

    with pytest.raises(InvalidArgumentError, match='must supply one or more column names'):
        sort(t, [])

    single = sort(t, ['activ']).collect()
    assert single['activ'].to_list() == sorted(single['activ'].to_list())

    multi = sort(t, ['activ', 'temp']).collect()
    assert multi['activ'].to_list() == sorted(multi['activ'].to_list())
    assert multi.rows() == sorted(
        multi.rows(), key=lambda r: (r[multi.columns.index('activ')], r[multi.columns.index('temp')])
    )

    assert sort(t, 'time').collect()['time'].to_list() == sorted(t.collect()['time'].to_list())


def test_sample(conn, engine):
    t = copy_to(conn, beaver_frame(40), 'beaver', repartition=2)

    seeded = sample(t, 0.5, replacement=False, seed=42)
    assert seeded.count() == 20
    assert seeded.collect().equals(seeded.collect())

    # same seed, same draw
    again = sample(t, 0.5, replacement=False, seed=42)
    assert again.collect().equals(seeded.collect())

    with_repl = sample(t, 2.0, replacement=True)
    assert with_repl.count() == 80

    with pytest.raises(InvalidArgumentError):
        sample(t, 1.5, replacement=False)

    with pytest.raises(InvalidArgumentError):
        sample(t, -0.1)

    with pytest.raises(InvalidArgumentError):
        sample(t, float('nan'))
