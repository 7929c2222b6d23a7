'''
Turn whatever local data an import receives into the canonical row/column
shape serializers work with: a `polars.DataFrame`.

'''
from __future__ import annotations

import logging
from pathlib import Path
from collections.abc import Mapping, Sequence
from typing import Any

import msgspec
import polars as pl
import pyarrow as pa

from remote_db._utils import (
    fetch_remote_file,
    get_root_datadir,
    is_remote_source,
    solve_redirects,
)
from remote_db.errors import InvalidArgumentError
from remote_db.lowlevel.diskops import read_frame


log = logging.getLogger(__name__)


LocalData = (
    pl.DataFrame
    | pl.LazyFrame
    | pl.Series
    | pa.Table
    | pa.RecordBatch
    | Mapping[str, Sequence[Any]]
    | Sequence[msgspec.Struct | Mapping[str, Any] | Sequence[Any]]
    | str
    | Path
)


def _from_rows(rows: Sequence[Any]) -> pl.DataFrame:
    if len(rows) == 0:
        raise InvalidArgumentError('Can\'t import an empty row sequence')

    match rows[0]:
        case msgspec.Struct():
            return pl.DataFrame(msgspec.to_builtins(list(rows)))

        case Mapping():
            return pl.from_dicts(list(rows))

        case tuple() | list():
            return pl.DataFrame(list(rows), orient='row')

    raise InvalidArgumentError(
        f'Don\'t know how to build a table from rows of {type(rows[0]).__name__}'
    )


def coerce_frame(
    data: LocalData,
    *,
    datadir: Path | None = None
) -> pl.DataFrame:
    match data:
        case pl.DataFrame():
            return data

        case pl.LazyFrame():
            return data.collect()

        case pl.Series():
            return data.to_frame()

        case pa.Table() | pa.RecordBatch():
            return pl.DataFrame(pl.from_arrow(data))

        case Path():
            return read_frame(data)

        case str() if is_remote_source(data):
            url = solve_redirects(data)
            local_path = fetch_remote_file(
                (datadir or get_root_datadir()) / 'remote', url
            )
            return read_frame(local_path)

        case str():
            return read_frame(data)

        case Mapping():
            return pl.DataFrame(dict(data))

        case Sequence():
            return _from_rows(data)

    raise InvalidArgumentError(
        f'Can\'t convert {type(data).__name__} into a table'
    )
