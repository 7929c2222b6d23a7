import threading

import pytest

from remote_db import TableExistsError, TableRef, UnknownTableError
from remote_db._testing import beaver_frame


def _upload(conn, engine, rows: int = 5):
    return engine.upload(conn, beaver_frame(rows), name='unused')


def test_register_and_exists(conn, engine):
    registry = conn.registry
    assert not registry.exists('beavers')

    ref = registry.register(_upload(conn, engine), 'beavers')

    assert isinstance(ref, TableRef)
    assert ref.name == 'beavers'
    assert registry.exists('beavers')
    assert 'beavers' in registry
    assert registry.get('beavers') is ref
    assert engine.catalog['beavers'] == ref.handle.object_id


def test_register_generates_unique_names(conn, engine):
    a = conn.registry.register(_upload(conn, engine))
    b = conn.registry.register(_upload(conn, engine))

    assert a.name != b.name
    assert a.name.startswith(conn.options.name_prefix)
    assert {a.name, b.name} <= set(conn.tables())


def test_remove_if_exists_is_idempotent(conn, engine):
    conn.registry.register(_upload(conn, engine), 'gone')

    assert conn.registry.remove_if_exists('gone')
    assert not conn.registry.remove_if_exists('gone')
    assert not conn.registry.exists('gone')
    assert conn.registry.get('gone') is None


def test_register_without_overwrite_fails(conn, engine):
    first = conn.registry.register(_upload(conn, engine), 't')

    with pytest.raises(TableExistsError, match='t already exists'):
        conn.registry.register(_upload(conn, engine, 3), 't', overwrite=False)

    assert conn.table('t') == first


def test_register_overwrite_replaces(conn, engine):
    conn.registry.register(_upload(conn, engine), 't')
    second = conn.registry.register(_upload(conn, engine, 3), 't')

    assert conn.table('t') == second
    assert conn.table('t').count() == 3
    assert conn.tables().count('t') == 1


def test_lookup_unknown_table(conn):
    with pytest.raises(UnknownTableError):
        conn.table('nope')


def test_lookup_table_registered_elsewhere(conn, engine):
    # registered straight through the engine, no live ref on this side
    handle = _upload(conn, engine)
    engine.catalog['external'] = handle.object_id

    ref = conn.table('external')
    assert ref.name == 'external'
    assert ref.handle == handle
    assert ref.count() == 5


def test_catalog_hook_fires_once_per_registration(conn, engine):
    seen = []
    conn.on_catalog_changed(lambda c, name: seen.append((c, name)))

    conn.registry.register(_upload(conn, engine), 'a')
    conn.registry.register(_upload(conn, engine), 'b')

    assert seen == [(conn, 'a'), (conn, 'b')]


def test_concurrent_registration_keeps_one_winner(conn, engine):
    handles = [_upload(conn, engine) for _ in range(8)]
    results = []
    errors = []

    def _register(h):
        try:
            results.append(conn.registry.register(h, 'contested', overwrite=False))

        except TableExistsError as e:
            errors.append(e)

    threads = [threading.Thread(target=_register, args=(h,)) for h in handles]
    for t in threads:
        t.start()

    for t in threads:
        t.join()

    assert len(results) == 1
    assert len(errors) == 7
    assert conn.table('contested') == results[0]
