'''
Operations that change how or when the engine materializes a table, every one
of them registers its result and returns a new `TableRef`.

'''
from __future__ import annotations

import logging
import math
from typing import Sequence

from remote_db._utils import ensure_count, ensure_name
from remote_db.bridge import invoke, invoke_static
from remote_db.errors import InvalidArgumentError, UnsupportedVersionError
from remote_db.structs import FrozenStruct
from remote_db.table import TableLike, TableRef, resolve_handle
from remote_db.table._import import register_result


log = logging.getLogger(__name__)


# first engine release able to partition by columns
PARTITION_BY_MIN_VERSION = '2.0.0'


def _column_tuple(columns: str | Sequence[str]) -> tuple[str, ...]:
    if isinstance(columns, str):
        return (columns,)

    return tuple(columns)


class PartitionSpec(FrozenStruct, frozen=True):
    count: int = 0
    by_columns: tuple[str, ...] = ()

    def validate(self) -> PartitionSpec:
        '''
        Checked copy of this spec, a bare string `by_columns` is a single
        column.

        '''
        ensure_count(self.count, 'partition count')
        by_columns = _column_tuple(self.by_columns)
        for col in by_columns:
            ensure_name(col, 'partition column')

        return PartitionSpec(count=self.count, by_columns=by_columns)


def persist(x: TableLike, storage_level: str | None = None) -> TableRef:
    '''
    Force pending computations and keep the result around at `storage_level`
    (`MEMORY_AND_DISK` unless configured otherwise). Persist anything that
    contains non-deterministic values, otherwise they can change between
    evaluations.

    '''
    sdf = resolve_handle(x)
    conn = sdf.connection
    storage_level = ensure_name(
        storage_level if storage_level is not None else conn.options.persist_level,
        'storage level'
    )

    sl = invoke_static(conn, conn.options.storage_level_class, storage_level)
    log.debug(f'[{conn.id}] persisting {sdf!r} at {storage_level}')
    return register_result(invoke(sdf, 'persist', sl))


def checkpoint(x: TableLike, eager: bool = True) -> TableRef:
    '''
    Truncate the lineage of `x`, `eager` computes it immediately.

    '''
    if not isinstance(eager, bool):
        raise InvalidArgumentError(f'eager must be a bool, got {eager!r}')

    return register_result(invoke(resolve_handle(x), 'checkpoint', eager))


def repartition(
    x: TableLike,
    partitions: PartitionSpec | int | None = None,
    by_columns: str | Sequence[str] = (),
) -> TableRef:
    '''
    Redistribute `x` into `partitions` partitions, optionally hashing rows by
    `by_columns`. Partitioning by columns needs an engine >= 2.0.

    '''
    match partitions:
        case PartitionSpec():
            if by_columns:
                raise InvalidArgumentError(
                    'Pass by_columns either inside the PartitionSpec or as '
                    'an argument, not both'
                )
            spec = partitions

        case None:
            spec = PartitionSpec(count=0, by_columns=_column_tuple(by_columns))

        case _:
            spec = PartitionSpec(
                count=partitions, by_columns=_column_tuple(by_columns)
            )

    spec = spec.validate()

    sdf = resolve_handle(x)
    conn = sdf.connection

    if conn.supports(PARTITION_BY_MIN_VERSION):
        result = invoke_static(
            conn,
            conn.options.repartition_class,
            'repartition',
            sdf,
            spec.count,
            list(spec.by_columns)
        )

    else:
        if spec.by_columns:
            raise UnsupportedVersionError(
                f'partitioning by columns only supported for engine '
                f'{PARTITION_BY_MIN_VERSION} and later, connection reports '
                f'{conn.engine_version}'
            )

        result = invoke(sdf, 'repartition', spec.count)

    return register_result(result)


def coalesce(x: TableLike, partitions: int) -> TableRef:
    if (
        isinstance(partitions, bool)
        or not isinstance(partitions, int)
        or partitions < 1
    ):
        raise InvalidArgumentError('number of partitions must be positive')

    return register_result(invoke(resolve_handle(x), 'coalesce', partitions))


def broadcast(x: TableLike) -> TableRef:
    '''
    Hint the engine to broadcast `x` when joining, nothing gets computed.

    '''
    sdf = resolve_handle(x)
    conn = sdf.connection
    return register_result(
        invoke_static(conn, conn.options.functions_class, 'broadcast', sdf)
    )


def sort(x: TableLike, columns: str | Sequence[str]) -> TableRef:
    '''
    Sort by one or more columns, each in ascending order.

    '''
    if isinstance(columns, str):
        columns = [columns]

    columns = [ensure_name(c, 'sort column') for c in columns]
    if not columns:
        raise InvalidArgumentError('must supply one or more column names')

    return register_result(
        invoke(resolve_handle(x), 'sort', columns[0], columns[1:])
    )


def sample(
    x: TableLike,
    fraction: float = 1.0,
    replacement: bool = True,
    seed: int | None = None,
) -> TableRef:
    '''
    Draw a random subset of rows. Without `seed` every evaluation draws again,
    `persist` the result if it needs to stay put.

    '''
    fraction = float(fraction)
    if (
        math.isnan(fraction)
        or fraction < 0
        or (not replacement and fraction > 1)
    ):
        raise InvalidArgumentError(
            f'fraction must be within [0, 1] without replacement or >= 0 '
            f'with it, got {fraction}'
        )

    sdf = resolve_handle(x)
    args: list = [bool(replacement), fraction]
    if seed is not None:
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise InvalidArgumentError(f'seed must be an integer, got {seed!r}')

        args.append(seed)

    return register_result(invoke(sdf, 'sample', *args))


def num_partitions(x: TableLike) -> int:
    if isinstance(x, TableRef):
        return x.num_partitions()

    return TableRef(resolve_handle(x)).num_partitions()
