'''
In-process stand-in for the remote engine, used by the test suite.

`LocalEngine` is both the `Transport` and the `Serializer` of a connection. It
keeps every remote object in a dict and models the parts of the engine's
behaviour the core relies on:

    - frames are lazy: each action re-runs the lineage unless the frame was
      persisted, checkpointed or cached.
    - frames are split in partitions, `repartition` shuffles rows at random on
      every evaluation.
    - the monotonically increasing id generator encodes the partition index
      in the high bits, like the real one does.

'''
from __future__ import annotations

from itertools import count
from typing import Any, Callable

import polars as pl

from remote_db.bridge import Call, RemoteHandle
from remote_db.connection import Connection, ConnectionOptions, StorageLevels
from remote_db.structs import ObjectRef


class EngineError(Exception): ...


Partitions = list[pl.DataFrame]


def split_frame(df: pl.DataFrame, n: int) -> Partitions:
    '''
    Split `df` in `n` contiguous partitions, sizes differ by at most one row.

    '''
    n = max(1, n)
    size, rem = divmod(df.height, n)
    parts = []
    offset = 0
    for i in range(n):
        length = size + (1 if i < rem else 0)
        parts.append(df.slice(offset, length))
        offset += length

    return parts


def concat_parts(parts: Partitions) -> pl.DataFrame:
    return pl.concat(parts, how='vertical')


class _Frame:
    def __init__(self, compute: Callable[[], Partitions]) -> None:
        self._compute = compute
        self._cached: Partitions | None = None
        self.storage_level: str | None = None
        self.broadcast = False
        self.evaluations = 0

    @staticmethod
    def of(parts: Partitions) -> _Frame:
        return _Frame(lambda: parts)

    def derive(self, fn: Callable[[Partitions], Partitions]) -> _Frame:
        return _Frame(lambda: fn(self.partitions()))

    def partitions(self) -> Partitions:
        if self._cached is not None:
            return self._cached

        parts = self._compute()
        self.evaluations += 1
        if self.storage_level is not None:
            self._cached = parts

        return parts

    def frame(self) -> pl.DataFrame:
        return concat_parts(self.partitions())


_cast_types: dict[str, type[pl.DataType]] = {
    'double': pl.Float64,
    'float': pl.Float32,
    'long': pl.Int64,
    'int': pl.Int32,
    'string': pl.String,
    'boolean': pl.Boolean,
}


class _Column:
    def __init__(self, fn: Callable[[int, pl.DataFrame], pl.Series]) -> None:
        self.fn = fn


class _StorageLevel:
    def __init__(self, name: str) -> None:
        self.name = name


class _Stat:
    def __init__(self, frame: _Frame) -> None:
        self.frame = frame


class _Rdd:
    def __init__(self, frame: _Frame) -> None:
        self.frame = frame


def _with_series(
    frame: _Frame,
    name: str,
    fn: Callable[[int, pl.DataFrame], pl.Series]
) -> _Frame:
    return frame.derive(
        lambda parts: [
            p.with_columns(fn(i, p).alias(name))
            for i, p in enumerate(parts)
        ]
    )


# transformer name -> fn(input series, *extra args) -> output series
TRANSFORMERS: dict[str, Callable[..., pl.Series]] = {
    'ft_binarizer': lambda s, threshold: (s > threshold).cast(pl.Float64),
    'ft_scale': lambda s, factor: s.cast(pl.Float64) * factor,
    'ft_sqrt': lambda s: s.cast(pl.Float64).sqrt(),
    'ft_negate': lambda s: -s,
}


class LocalEngine:
    def __init__(
        self,
        *,
        version: str = '3.5.1',
        default_partitions: int = 4,
        options: ConnectionOptions | None = None,
        wire: bool = False,
    ) -> None:
        self.version = version
        self.default_partitions = default_partitions
        self.options = options or ConnectionOptions()
        # round trip every call through msgpack like a socket transport would
        self.wire = wire

        self.catalog: dict[str, str] = {}
        self.calls: list[Call] = []

        self._objects: dict[str, Any] = {}
        self._ids: dict[int, str] = {}
        self._next_id = count(1)

        opts = self.options
        self._statics: dict[tuple[str, str], Callable[..., Any]] = {
            (opts.catalog_class, 'tableNames'): lambda: list(self.catalog),
            (opts.catalog_class, 'dropTempView'): self._drop_temp_view,
            (opts.catalog_class, 'table'): self._table,
            (opts.functions_class, 'monotonicallyIncreasingId'): self._mono_id,
            (opts.functions_class, 'col'): self._col,
            (opts.functions_class, 'broadcast'): self._broadcast,
            (opts.utils_class, 'engineVersion'): lambda: self.version,
            (opts.utils_class, 'addSequentialIndex'): self._add_sequential_index,
            (opts.utils_class, 'getLastIndex'): self._get_last_index,
            (opts.repartition_class, 'repartition'): self._repartition_by,
        }

    # object table

    def _store(self, obj: Any) -> ObjectRef:
        oid = self._ids.get(id(obj))
        if oid is None:
            oid = f'obj-{next(self._next_id)}'
            self._ids[id(obj)] = oid
            self._objects[oid] = obj

        return ObjectRef(id=oid)

    def get(self, oid: str) -> Any:
        try:
            return self._objects[oid]

        except KeyError:
            raise EngineError(f'Unknown object reference {oid}') from None

    def _resolve(self, value: Any) -> Any:
        match value:
            case ObjectRef(id=oid):
                return self.get(oid)

            case {'type': 'ref', 'id': str() as oid} if len(value) == 2:
                return self.get(oid)

            case list():
                return [self._resolve(v) for v in value]

        return value

    def _wrap(self, value: Any) -> Any:
        match value:
            case _Frame() | _Column() | _StorageLevel() | _Stat() | _Rdd():
                return self._store(value)

            case list():
                return [self._wrap(v) for v in value]

        return value

    # transport

    def call(self, call: Call) -> Any:
        if self.wire:
            call = Call.from_bytes(call.encode())

        self.calls.append(call)
        args = [self._resolve(a) for a in call.args]

        match call.target:
            case ObjectRef(id=oid):
                obj = self.get(oid)
                fn = getattr(
                    self, f'_{type(obj).__name__.strip("_").lower()}_{call.method}', None
                )
                if fn is None:
                    raise EngineError(
                        f'No method {call.method} on {type(obj).__name__.strip("_")}'
                    )
                result = fn(obj, *args)

            case str() as cls if cls == self.options.storage_level_class:
                result = self._storage_level(call.method, *args)

            case str() as cls if cls == self.options.transformer_class:
                result = self._transform(call.method, *args)

            case str() as cls:
                fn = self._statics.get((cls, call.method))
                if fn is None:
                    raise EngineError(f'No static method {cls}.{call.method}')
                result = fn(*args)

        return self._wrap(result)

    # serializer

    def upload(
        self,
        conn: Connection,
        frame: pl.DataFrame,
        *,
        name: str,
        repartition: int = 0
    ) -> RemoteHandle:
        parts = split_frame(frame, repartition or self.default_partitions)
        return RemoteHandle(conn, self._store(_Frame.of(parts)).id)

    def download(self, handle: RemoteHandle) -> pl.DataFrame:
        return self.frame_for(handle).frame()

    # test helpers

    def frame_for(self, x: Any) -> _Frame:
        handle = getattr(x, 'handle', x)
        obj = self.get(handle.object_id)
        if not isinstance(obj, _Frame):
            raise EngineError(f'{handle!r} is not a frame')

        return obj

    def partitions_of(self, x: Any) -> Partitions:
        return self.frame_for(x).partitions()

    def connect(self, **kwargs) -> Connection:
        return Connection(
            self,
            serializer=self,
            options=self.options,
            **kwargs
        )

    def methods_called(self) -> list[str]:
        return [c.method for c in self.calls]

    # catalog

    def _drop_temp_view(self, name: str) -> bool:
        return self.catalog.pop(name, None) is not None

    def _table(self, name: str) -> _Frame:
        if name not in self.catalog:
            raise EngineError(f'Table or view not found: {name}')

        return self.get(self.catalog[name])

    # statics

    def _storage_level(self, name: str) -> _StorageLevel:
        if name.startswith('_') or name not in vars(StorageLevels):
            raise EngineError(f'Unknown storage level: {name}')

        return _StorageLevel(name)

    def _mono_id(self) -> _Column:
        return _Column(
            lambda i, p: pl.int_range(
                i << 33, (i << 33) + p.height, dtype=pl.Int64, eager=True
            )
        )

    def _col(self, name: str) -> _Column:
        return _Column(lambda i, p: p.get_column(name))

    def _broadcast(self, frame: _Frame) -> _Frame:
        hinted = frame.derive(lambda parts: parts)
        hinted.broadcast = True
        return hinted

    def _add_sequential_index(self, frame: _Frame, start: int, name: str) -> _Frame:
        def _index(parts: Partitions) -> Partitions:
            out = []
            offset = start
            for p in parts:
                out.append(
                    p.with_columns(
                        pl.int_range(
                            offset, offset + p.height, dtype=pl.Int64, eager=True
                        ).alias(name)
                    )
                )
                offset += p.height
            return out

        return frame.derive(_index)

    def _get_last_index(self, frame: _Frame, name: str) -> float | None:
        for p in reversed(frame.partitions()):
            if p.height > 0:
                return float(p.get_column(name).max())

        return None

    def _repartition_by(self, frame: _Frame, n: int, by: list[str]) -> _Frame:
        if not by:
            return self._frame_repartition(frame, n)

        def _hash(parts: Partitions) -> Partitions:
            target = n or len(parts)
            df = concat_parts(parts)
            missing = [c for c in by if c not in df.columns]
            if missing:
                raise EngineError(f'cannot resolve columns {missing}')

            keys = df.select(by).hash_rows() % target
            return [df.filter(keys == k) for k in range(target)]

        return frame.derive(_hash)

    def _transform(self, transformer: str, frame: _Frame, input_col: str, output_col: str, *args) -> _Frame:
        fn = TRANSFORMERS.get(transformer)
        if fn is None:
            raise EngineError(f'Unknown transformer: {transformer}')

        return _with_series(
            frame, output_col, lambda i, p: fn(p.get_column(input_col), *args)
        )

    # frame methods

    def _frame_columns(self, frame: _Frame) -> list[str]:
        return frame.partitions()[0].columns

    def _frame_count(self, frame: _Frame) -> int:
        return sum(p.height for p in frame.partitions())

    def _frame_rdd(self, frame: _Frame) -> _Rdd:
        return _Rdd(frame)

    def _frame_stat(self, frame: _Frame) -> _Stat:
        return _Stat(frame)

    def _frame_registerTempTable(self, frame: _Frame, name: str) -> None:
        self.catalog[name] = self._store(frame).id

    def _frame_persist(self, frame: _Frame, level: _StorageLevel) -> _Frame:
        frame.storage_level = level.name
        return frame

    def _frame_cache(self, frame: _Frame) -> _Frame:
        frame.storage_level = StorageLevels.MEMORY_AND_DISK
        return frame

    def _frame_checkpoint(self, frame: _Frame, eager: bool) -> _Frame:
        if eager:
            checkpointed = _Frame.of(frame.partitions())

        else:
            checkpointed = frame.derive(lambda parts: parts)

        checkpointed.storage_level = 'CHECKPOINT'
        return checkpointed

    def _frame_withColumn(self, frame: _Frame, name: str, col: _Column) -> _Frame:
        return _with_series(frame, name, col.fn)

    def _frame_select(self, frame: _Frame, columns: list[str]) -> _Frame:
        return frame.derive(lambda parts: [p.select(columns) for p in parts])

    def _frame_sort(self, frame: _Frame, first: str, rest: list[str]) -> _Frame:
        def _sort(parts: Partitions) -> Partitions:
            df = concat_parts(parts)
            cols = [first, *rest]
            missing = [c for c in cols if c not in df.columns]
            if missing:
                raise EngineError(f'cannot resolve columns {missing}')

            return split_frame(df.sort(cols), len(parts))

        return frame.derive(_sort)

    def _frame_sample(
        self,
        frame: _Frame,
        replacement: bool,
        fraction: float,
        seed: int | None = None
    ) -> _Frame:
        return frame.derive(
            lambda parts: [
                p.sample(
                    fraction=fraction,
                    with_replacement=replacement,
                    seed=None if seed is None else seed + i,
                )
                for i, p in enumerate(parts)
            ]
        )

    def _frame_repartition(self, frame: _Frame, n: int) -> _Frame:
        def _shuffle(parts: Partitions) -> Partitions:
            df = concat_parts(parts).sample(fraction=1.0, shuffle=True)
            return split_frame(df, n or len(parts))

        return frame.derive(_shuffle)

    def _frame_coalesce(self, frame: _Frame, n: int) -> _Frame:
        def _merge(parts: Partitions) -> Partitions:
            if n >= len(parts):
                return parts

            size, rem = divmod(len(parts), n)
            out = []
            offset = 0
            for i in range(n):
                length = size + (1 if i < rem else 0)
                out.append(concat_parts(parts[offset:offset + length]))
                offset += length
            return out

        return frame.derive(_merge)

    def _frame_describe(self, frame: _Frame, columns: list[str]) -> _Frame:
        def _summary(parts: Partitions) -> Partitions:
            df = concat_parts(parts)
            data: dict[str, list[str | None]] = {
                'summary': ['count', 'mean', 'stddev', 'min', 'max']
            }
            for name in columns:
                s = df.get_column(name)
                numeric = s.dtype.is_numeric()
                values = [
                    s.len() - s.null_count(),
                    s.mean() if numeric else None,
                    s.std() if numeric else None,
                    s.min(),
                    s.max(),
                ]
                data[name] = [None if v is None else str(v) for v in values]

            return [
                pl.DataFrame(
                    data, schema={k: pl.String for k in data}
                )
            ]

        return frame.derive(_summary)

    # column methods

    def _column_cast(self, col: _Column, to: str) -> _Column:
        dtype = _cast_types.get(to)
        if dtype is None:
            raise EngineError(f'Unsupported cast type: {to}')

        return _Column(lambda i, p: col.fn(i, p).cast(dtype))

    # misc

    def _rdd_getNumPartitions(self, rdd: _Rdd) -> int:
        return len(rdd.frame.partitions())

    def _stat_approxQuantile(
        self,
        stat: _Stat,
        column: str,
        probabilities: list[float],
        relative_error: float
    ) -> list[float]:
        s = stat.frame.frame().get_column(column).drop_nulls().cast(pl.Float64)
        if s.len() == 0:
            return []

        return [
            float(s.quantile(p, interpolation='nearest'))
            for p in probabilities
        ]


def beaver_frame(rows: int = 5) -> pl.DataFrame:
    '''
    Small deterministic body temperature dataset.

    '''
    return pl.DataFrame(
        {
            'day': [346 + (i // 3) for i in range(rows)],
            'time': [840 + 10 * i for i in range(rows)],
            'temp': [36.33 + 0.07 * (i % 7) for i in range(rows)],
            'activ': [i % 2 for i in range(rows)],
        }
    )


def local_connection(
    *,
    version: str = '3.5.1',
    default_partitions: int = 4,
    wire: bool = False,
    options: ConnectionOptions | None = None,
) -> tuple[Connection, LocalEngine]:
    engine = LocalEngine(
        version=version,
        default_partitions=default_partitions,
        wire=wire,
        options=options,
    )
    return engine.connect(), engine
