import logging
from pathlib import Path
from typing import Literal

import polars as pl

from remote_db.errors import InvalidArgumentError


log = logging.getLogger(__name__)


FrameFormats = Literal['csv', 'ipc', 'parquet']


def format_from_path(path: str | Path) -> FrameFormats:
    '''
    Given a file path figure out its format from the suffix.

    '''
    path = Path(path)
    splt = path.name.split('.')

    if splt[-1] == 'tmp':
        splt.pop()

    match splt[-1]:
        case 'csv' | 'ipc' | 'parquet':
            return splt[-1]

        case 'arrow' | 'feather':
            return 'ipc'

        case _:
            raise InvalidArgumentError(
                'Format not specified and target file has unknown suffix:'
                f' {path.suffix}'
            )


def scan_frame(
    path: str | Path,
    *,
    format: FrameFormats | None = None,
    **kwargs
) -> pl.LazyFrame:
    '''
    Scan any supported frame file into a LazyFrame.

    '''
    if not format:
        format = format_from_path(path)

    match format:
        case 'csv':
            return pl.scan_csv(path, **kwargs)

        case 'ipc':
            return pl.scan_ipc(path, **kwargs)

        case 'parquet':
            return pl.scan_parquet(path, **kwargs)

    raise InvalidArgumentError(f'Unsupported frame format: {format}')


def read_frame(
    path: str | Path,
    *,
    format: FrameFormats | None = None,
    **kwargs
) -> pl.DataFrame:
    '''
    Eagerly load a local frame file, imports need the whole table in memory
    before it can be handed to the serializer.

    '''
    log.debug(f'reading local frame {path}')
    return scan_frame(path, format=format, **kwargs).collect()
