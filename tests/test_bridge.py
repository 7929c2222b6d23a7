import pytest

from remote_db import Call, InvalidArgumentError, InvocationError, RemoteHandle
from remote_db.bridge import decode_result, encode_arg, invoke, invoke_static
from remote_db.structs import ObjectRef
from remote_db._testing import beaver_frame, local_connection


class _FailingTransport:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def call(self, call):
        raise self.exc


def test_invoke_returns_handles_and_scalars(conn, engine):
    t = conn.registry.register(engine.upload(conn, beaver_frame(), name='x'))

    rdd = invoke(t.handle, 'rdd')
    assert isinstance(rdd, RemoteHandle)
    assert rdd.connection is conn

    assert invoke(rdd, 'getNumPartitions') == engine.default_partitions
    assert invoke(t.handle, 'count') == 5
    assert invoke(t.handle, 'columns') == ['day', 'time', 'temp', 'activ']


def test_invoke_static_reaches_class_entry_points(conn, engine):
    assert invoke_static(conn, conn.options.utils_class, 'engineVersion') == engine.version

    level = invoke_static(conn, conn.options.storage_level_class, 'DISK_ONLY')
    assert isinstance(level, RemoteHandle)


def test_remote_failure_message_verbatim():
    from remote_db.connection import Connection

    msg = 'java.lang.IllegalArgumentException: requirement failed: bad things'
    failing = Connection(_FailingTransport(RuntimeError(msg)), version='3.0.0')

    with pytest.raises(InvocationError) as exc_info:
        invoke_static(failing, 'some.Class', 'method', 1, 'two')

    assert str(exc_info.value) == msg
    assert exc_info.value.method == 'method'
    assert exc_info.value.target == 'some.Class'
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_unknown_method_surfaces_as_invocation_error(conn, engine):
    t = conn.registry.register(engine.upload(conn, beaver_frame(), name='x'))
    with pytest.raises(InvocationError, match='No method frobnicate'):
        invoke(t.handle, 'frobnicate')


def test_handles_do_not_cross_connections():
    conn_a, engine_a = local_connection()
    conn_b, _ = local_connection()

    handle = engine_a.upload(conn_a, beaver_frame(), name='a')
    with pytest.raises(InvalidArgumentError):
        encode_arg(conn_b, handle)


def test_encode_walks_containers(conn, engine):
    handle = engine.upload(conn, beaver_frame(), name='a')
    ref = conn.registry.register(handle)

    encoded = encode_arg(conn, [handle, (ref, 1), {'k': handle}])
    assert encoded == [
        handle.ref,
        [handle.ref, 1],
        {'k': handle.ref},
    ]


def test_decode_accepts_builtin_refs(conn):
    decoded = decode_result(conn, [{'type': 'ref', 'id': 'obj-9'}, {'type': 'x'}, 3])
    assert decoded[0] == RemoteHandle(conn, 'obj-9')
    assert decoded[1:] == [{'type': 'x'}, 3]


def test_call_wire_form():
    call = Call(target=ObjectRef(id='obj-1'), method='sort', args=['a', ['b']])
    decoded = Call.from_bytes(call.encode())
    assert decoded.target == ObjectRef(id='obj-1')
    assert decoded.method == 'sort'
    assert decoded.args == ['a', ['b']]


def test_wire_transport_end_to_end():
    conn, engine = local_connection(wire=True)
    from remote_db import copy_to, sort

    t = copy_to(conn, beaver_frame(), 'wired')
    s = sort(t, ['activ', 'time'])
    assert engine.frame_for(s).frame()['activ'].to_list() == [0, 0, 0, 1, 1]
