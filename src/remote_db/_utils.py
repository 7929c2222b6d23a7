'''
Misc internal utilities

'''
import os
import logging

from pathlib import Path
from uuid import uuid4

import requests
from packaging.version import InvalidVersion, Version

from remote_db.errors import InvalidArgumentError


log = logging.getLogger(__name__)


default_name_prefix: str = 'remote_db_tmp_'


def generate_unique_name(prefix: str = default_name_prefix) -> str:
    '''
    Collision resistant table name, used whenever a caller doesn't supply one.

    '''
    return f'{prefix}{uuid4().hex}'


def parse_version(v: str | Version) -> Version:
    '''
    Parse engine version strings, vendor suffixes like `2.4.0-SNAPSHOT` or
    `3.1.2-amzn-0` are cut at the first dash.

    '''
    if isinstance(v, Version):
        return v

    try:
        return Version(str(v).strip().split('-')[0])

    except InvalidVersion as e:
        raise InvalidArgumentError(f'Unparseable engine version: {v!r}') from e


def ensure_name(name: str, what: str = 'name') -> str:
    if not isinstance(name, str) or not name:
        raise InvalidArgumentError(f'{what} must be a non-empty string, got {name!r}')

    return name


def ensure_count(n: int, what: str, minimum: int = 0) -> int:
    if isinstance(n, bool) or not isinstance(n, int) or n < minimum:
        raise InvalidArgumentError(
            f'{what} must be an integer >= {minimum}, got {n!r}'
        )

    return n


remote_src_protos: tuple[str, ...] = (
    'http',
    'https',
)


def is_remote_source(source: str) -> bool:
    return any(
        source.startswith(f'{proto}://')
        for proto in remote_src_protos
    )


default_datadir: Path = Path.home() / '.remote_db'


def get_root_datadir() -> Path:
    return Path(os.getenv('REMOTE_DB_DATADIR', default_datadir))


def solve_redirects(
    url: str
) -> str:
    head = requests.head(url)

    # maybe follow location header (redirect)
    if redirect_url := head.headers.get('Location'):
        return redirect_url

    return url


def fetch_remote_file(
    datadir: Path,
    url: str,
    *,
    suffix: str | None = None
) -> Path:
    '''
    Download `url` into `datadir` once, files are keyed by the server's ETag so
    a changed remote source lands on a new local path.

    '''
    head = requests.head(url)

    etag = head.headers.get('ETag')
    if not etag:
        raise RuntimeError(
            f'Remote source head response missing etag header: {head.headers}'
        )

    # maybe we got a "weak etag" which is prefixed by 'W/'
    if etag.startswith('W/'):
        etag = etag[2:]

    etag = etag.strip('"')

    if not suffix:
        url_filename = url.split('?')[0].split('/')[-1]
        suffix = url_filename.split('.')[-1]

    local_path = datadir / f'{etag}.{suffix}'

    if not local_path.is_file():
        local_path.parent.mkdir(parents=True, exist_ok=True)
        log.info(f'fetching {url} into {local_path}...')

        resp = requests.get(url, allow_redirects=True, stream=True)
        resp.raise_for_status()

        with open(local_path, 'wb+') as f:
            for chunk in resp.iter_content(chunk_size=4 * 1024):
                f.write(chunk)

    return local_path
