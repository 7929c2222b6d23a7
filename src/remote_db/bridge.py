'''
# Invocation bridge

Two synchronous call primitives against the engine process:

    - `invoke(handle, method, *args)` calls a method on a remote object.
    - `invoke_static(conn, class_name, method, *args)` reaches class level
      entry points that have no natural receiver (id generators, catalog
      helpers, storage level constants...).

Arguments are encoded before crossing: `RemoteHandle`s (and anything holding
one, like a `TableRef`) become `ObjectRef`s, containers are walked
recursively. Results are decoded the other way around, any `ObjectRef` coming
back is bound to the calling connection as a new `RemoteHandle`.

Whatever the transport raises surfaces as `InvocationError` with the remote
diagnostic as its message, nothing is retried or reinterpreted here.

Calls block until the engine answers and a connection assumes a single call
in flight, hosts sharing one between threads or tasks must serialize access
(see `remote_db.lowlevel.BridgeExecutor`).

'''
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from remote_db.errors import InvalidArgumentError, InvocationError
from remote_db.structs import FrozenStruct, ObjectRef

if TYPE_CHECKING:
    from remote_db.connection import Connection


log = logging.getLogger(__name__)


class Call(FrozenStruct, frozen=True):
    target: ObjectRef | str
    method: str
    args: list[Any] = []

    def describe(self) -> str:
        target = (
            f'<{self.target.id}>'
            if isinstance(self.target, ObjectRef)
            else self.target
        )
        return f'{target}.{self.method}({len(self.args)} args)'


@runtime_checkable
class Transport(Protocol):
    '''
    Connection level collaborator that actually moves a `Call` to the engine
    and returns its decoded result.

    '''
    def call(self, call: Call) -> Any:
        ...


class RemoteHandle:
    '''
    Opaque reference to an object living in the engine, scoped to the
    connection it came from.

    '''
    __slots__ = ('connection', 'object_id')

    def __init__(self, connection: Connection, object_id: str) -> None:
        self.connection = connection
        self.object_id = object_id

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(id=self.object_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RemoteHandle):
            return NotImplemented

        return (
            self.connection is other.connection
            and self.object_id == other.object_id
        )

    def __hash__(self) -> int:
        return hash((self.connection.id, self.object_id))

    def __repr__(self) -> str:
        return f'<RemoteHandle {self.object_id} conn={self.connection.id}>'


@runtime_checkable
class HasHandle(Protocol):
    handle: RemoteHandle


def resolve_connection(handle: RemoteHandle) -> Connection:
    return handle.connection


def encode_arg(conn: Connection, value: Any) -> Any:
    match value:
        case RemoteHandle():
            if value.connection is not conn:
                raise InvalidArgumentError(
                    f'{value!r} belongs to connection {value.connection.id}, '
                    f'can\'t pass it to {conn.id}'
                )
            return value.ref

        case HasHandle():
            return encode_arg(conn, value.handle)

        case list() | tuple():
            return [encode_arg(conn, v) for v in value]

        case dict():
            return {k: encode_arg(conn, v) for k, v in value.items()}

    return value


def decode_result(conn: Connection, value: Any) -> Any:
    match value:
        case ObjectRef(id=oid):
            return RemoteHandle(conn, oid)

        # byte level transports hand back builtins
        case {'type': 'ref', 'id': str() as oid} if len(value) == 2:
            return RemoteHandle(conn, oid)

        case list() | tuple():
            return [decode_result(conn, v) for v in value]

        case dict():
            return {k: decode_result(conn, v) for k, v in value.items()}

    return value


def _call(conn: Connection, call: Call) -> Any:
    log.debug(f'[{conn.id}] -> {call.describe()}')
    try:
        result = conn.transport.call(call)

    except InvocationError:
        raise

    except Exception as e:
        log.debug(f'[{conn.id}] {call.describe()} failed: {e}')
        raise InvocationError(
            str(e),
            method=call.method,
            target=(
                call.target.id
                if isinstance(call.target, ObjectRef)
                else call.target
            )
        ) from e

    return decode_result(conn, result)


def invoke(handle: RemoteHandle, method: str, *args: Any) -> Any:
    '''
    Call `method` on the remote object behind `handle`.

    '''
    conn = resolve_connection(handle)
    return _call(
        conn,
        Call(
            target=handle.ref,
            method=method,
            args=[encode_arg(conn, a) for a in args]
        )
    )


def invoke_static(
    conn: Connection,
    class_name: str,
    method: str,
    *args: Any
) -> Any:
    '''
    Call a class level `method` of the remote `class_name`.

    '''
    return _call(
        conn,
        Call(
            target=class_name,
            method=method,
            args=[encode_arg(conn, a) for a in args]
        )
    )
