from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Sequence

from remote_db._utils import ensure_count, ensure_name, generate_unique_name
from remote_db.bridge import RemoteHandle, invoke
from remote_db.errors import (
    InvalidArgumentError,
    InvocationError,
    RemoteDBError,
    TableExistsError,
)
from remote_db.table import TableRef
from remote_db.table.coerce import LocalData, coerce_frame

if TYPE_CHECKING:
    from remote_db.connection import Connection, Serializer


log = logging.getLogger(__name__)


def copy_to(
    conn: Connection,
    data: LocalData,
    name: str | None = None,
    *,
    memory: bool = True,
    repartition: int = 0,
    overwrite: bool = False,
    serializer: Serializer | None = None,
    datadir: Path | None = None,
) -> TableRef:
    '''
    Copy local tabular `data` into the engine as table `name` and return a
    reference to it.

    - `memory`: cache the new table right away.
    - `repartition`: partitions to distribute the table into, 0 leaves the
      serializer's default layout.
    - `overwrite`: drop a pre-existing table called `name` instead of failing
      with `TableExistsError`.

    '''
    name = (
        ensure_name(name)
        if name is not None
        else generate_unique_name(conn.options.name_prefix)
    )
    ensure_count(repartition, 'repartition')

    serializer = serializer or conn.serializer
    if serializer is None:
        raise RemoteDBError(
            f'{conn!r} has no serializer configured, pass one to copy_to'
        )

    frame = coerce_frame(data, datadir=datadir)

    registry = conn.registry
    with registry.lock:
        if overwrite:
            registry.remove_if_exists(name)

        elif registry.exists(name):
            raise TableExistsError(name)

        log.info(
            f'[{conn.id}] importing {frame.height:,} rows x {frame.width} cols '
            f'as {name}...'
        )
        handle = serializer.upload(
            conn, frame, name=name, repartition=repartition
        )

        if memory:
            invoke(handle, 'cache')

        ref = registry.register(handle, name, overwrite=False, notify=False)

    log.info(f'[{conn.id}] table {name} imported')
    conn.notify_catalog_changed(name)
    return ref


sdf_import = copy_to


def sdf_register(
    x: TableRef | RemoteHandle | Sequence[TableRef | RemoteHandle],
    name: str | Sequence[str | None] | None = None,
    *,
    overwrite: bool = True,
) -> TableRef | dict[str, TableRef]:
    '''
    Give an existing remote frame (or a list of them) a table name without
    copying any data.

    A list input registers each element under the name at the same position
    and returns a `{name: TableRef}` dict in input order, missing names are
    generated.

    '''
    match x:
        case RemoteHandle():
            if name is not None and not isinstance(name, str):
                raise InvalidArgumentError(
                    f'Single table registration expects a single name, got {name!r}'
                )
            return x.connection.registry.register(x, name, overwrite=overwrite)

        case TableRef():
            return sdf_register(x.handle, name, overwrite=overwrite)

        case list() | tuple():
            if isinstance(name, str):
                raise InvalidArgumentError(
                    'Registering a list of tables requires a list of names'
                )

            names = list(name) if name is not None else [None] * len(x)
            if len(names) != len(x):
                raise InvalidArgumentError(
                    f'Got {len(x)} tables but {len(names)} names'
                )

            given = [n for n in names if n is not None]
            if dupes := sorted({n for n in given if given.count(n) > 1}):
                raise InvalidArgumentError(
                    f'Table names must be distinct, repeated: {", ".join(dupes)}'
                )

            result: dict[str, TableRef] = {}
            for item, item_name in zip(x, names, strict=True):
                if not isinstance(item, TableRef | RemoteHandle):
                    raise InvalidArgumentError(
                        f'Can\'t register {type(item).__name__} as a table'
                    )

                ref = sdf_register(item, item_name, overwrite=overwrite)
                assert isinstance(ref, TableRef)
                result[ref.name] = ref

            return result

    raise InvalidArgumentError(
        f'Can\'t register {type(x).__name__} as a table'
    )


def register_result(result: Any, name: str | None = None) -> TableRef:
    '''
    Shared last step of every operation producing a new remote frame.

    '''
    if not isinstance(result, RemoteHandle):
        raise InvocationError(
            f'Engine returned {type(result).__name__} where a remote frame '
            'was expected'
        )

    return result.connection.registry.register(result, name)
