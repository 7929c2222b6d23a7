from __future__ import annotations

from typing import TYPE_CHECKING

import polars as pl

from remote_db.bridge import RemoteHandle, invoke
from remote_db.errors import InvalidArgumentError, RemoteDBError

if TYPE_CHECKING:
    from remote_db.connection import Connection


class TableRef:
    '''
    Proxy for a table living in the engine.

    A named reference is registered in the connection's catalog and can be
    looked up by that name, an unnamed one is a transient result. Either way
    references are never mutated, every operation returns a new one.

    '''
    __slots__ = ('handle', 'name')

    def __init__(
        self,
        handle: RemoteHandle,
        name: str | None = None
    ) -> None:
        self.handle = handle
        self.name = name

    @property
    def connection(self) -> Connection:
        return self.handle.connection

    @property
    def is_registered(self) -> bool:
        return self.name is not None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableRef):
            return NotImplemented

        return self.handle == other.handle and self.name == other.name

    def __hash__(self) -> int:
        return hash((self.handle, self.name))

    def __repr__(self) -> str:
        return f'<TableRef {self.name or "<unnamed>"} {self.handle.object_id}>'

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(invoke(self.handle, 'columns'))

    def count(self) -> int:
        return int(invoke(self.handle, 'count'))

    def num_partitions(self) -> int:
        rdd = invoke(self.handle, 'rdd')
        return int(invoke(rdd, 'getNumPartitions'))

    def collect(self) -> pl.DataFrame:
        '''
        Pull the whole table into a local `polars.DataFrame` through the
        connection's serializer.

        '''
        serializer = self.connection.serializer
        if serializer is None:
            raise RemoteDBError(
                f'{self.connection!r} has no serializer, can\'t collect {self!r}'
            )

        return serializer.download(self.handle)

    def pretty_str(self) -> str:
        '''Return a human-readable description of the reference.'''
        lines = [
            f'Table: {self.name or "<unnamed>"}',
            f'Connection: {self.connection.id}',
            f'Object: {self.handle.object_id}',
            'Columns:',
        ]
        lines.extend(f'  - {col}' for col in self.columns)
        return '\n'.join(lines)


TableLike = TableRef | RemoteHandle


def resolve_handle(x: TableLike) -> RemoteHandle:
    match x:
        case TableRef():
            return x.handle

        case RemoteHandle():
            return x

    raise InvalidArgumentError(
        f'Expected a TableRef or RemoteHandle, got {type(x).__name__}'
    )
