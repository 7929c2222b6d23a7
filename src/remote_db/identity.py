'''
# Identifier columns

Two ways of numbering rows:

    - `with_unique_id`: the engine's monotonically increasing id generator.
      Values are unique and increase in assignment order but have gaps (they
      encode the partition index), and they are only stable within one
      evaluation. The table is persisted right after adding the column so
      later operations don't re-evaluate it into different ids.

    - `with_sequential_id`: exactly `from_, from_ + 1, ..., from_ + n - 1`
      over an n row table no matter how it is partitioned.

`last_index` reads back the highest id assigned by either of them.

'''
from __future__ import annotations

import logging
from typing import Any

from remote_db._utils import ensure_name
from remote_db.bridge import invoke, invoke_static
from remote_db.errors import InvalidArgumentError
from remote_db.lifecycle import persist
from remote_db.table import TableLike, TableRef, resolve_handle
from remote_db.table._import import register_result


log = logging.getLogger(__name__)


def with_unique_id(
    x: TableLike,
    id: str = 'id',
    *,
    storage_level: str | None = None
) -> TableRef:
    '''
    Add a unique (not sequential) double typed id column named `id`, then
    persist at `storage_level` (`MEMORY_ONLY` unless configured otherwise).

    '''
    ensure_name(id, 'id')
    sdf = resolve_handle(x)
    conn = sdf.connection
    opts = conn.options

    mii = invoke_static(conn, opts.functions_class, 'monotonicallyIncreasingId')
    mii = invoke(mii, 'cast', 'double')

    transformed = invoke(sdf, 'withColumn', id, mii)
    log.debug(f'[{conn.id}] added unique id column {id} to {sdf!r}, persisting')

    return persist(
        transformed,
        storage_level if storage_level is not None else opts.unique_id_level
    )


def with_sequential_id(
    x: TableLike,
    id: str = 'id',
    from_: int = 1
) -> TableRef:
    '''
    Add column `id` numbering rows sequentially starting at `from_`,
    independent of the partition layout.

    '''
    ensure_name(id, 'id')
    if isinstance(from_, bool) or not isinstance(from_, int):
        raise InvalidArgumentError(f'from_ must be an integer, got {from_!r}')

    sdf = resolve_handle(x)
    conn = sdf.connection
    return register_result(
        invoke_static(
            conn,
            conn.options.utils_class,
            'addSequentialIndex',
            sdf,
            from_,
            id
        )
    )


def last_index(x: TableLike, id: str = 'id') -> Any:
    '''
    Highest value of id column `id`, found by scanning the last non empty
    partition. Only meaningful on columns made by `with_unique_id` or
    `with_sequential_id`.

    '''
    ensure_name(id, 'id')
    sdf = resolve_handle(x)
    conn = sdf.connection
    fns = conn.options.functions_class

    as_num = invoke(invoke_static(conn, fns, 'col', id), 'cast', 'double')
    sdf = invoke(invoke(sdf, 'select', [id]), 'withColumn', id, as_num)

    return invoke_static(conn, conn.options.utils_class, 'getLastIndex', sdf, id)
