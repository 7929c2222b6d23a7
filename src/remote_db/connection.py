from __future__ import annotations

import os
import logging
from logging import Logger
from typing import TYPE_CHECKING, Callable, Protocol, Self, runtime_checkable
from uuid import uuid4

import polars as pl
from packaging.version import Version

from remote_db._utils import default_name_prefix, parse_version
from remote_db.bridge import RemoteHandle, Transport, invoke_static
from remote_db.registry import TableRegistry
from remote_db.structs import FrozenStruct

if TYPE_CHECKING:
    from remote_db.table import TableRef


log = logging.getLogger(__name__)


class StorageLevels:
    MEMORY_ONLY = 'MEMORY_ONLY'
    MEMORY_ONLY_SER = 'MEMORY_ONLY_SER'
    MEMORY_AND_DISK = 'MEMORY_AND_DISK'
    MEMORY_AND_DISK_SER = 'MEMORY_AND_DISK_SER'
    DISK_ONLY = 'DISK_ONLY'
    OFF_HEAP = 'OFF_HEAP'


class ConnectionOptions(FrozenStruct, frozen=True):
    # default prefix for auto generated table names
    name_prefix: str = default_name_prefix
    # storage level used by `persist` when none is given
    persist_level: str = StorageLevels.MEMORY_AND_DISK
    # storage level `with_unique_id` forces after adding the column
    unique_id_level: str = StorageLevels.MEMORY_ONLY

    # engine side entry points reached through `invoke_static`
    functions_class: str = 'org.apache.spark.sql.functions'
    storage_level_class: str = 'org.apache.spark.storage.StorageLevel'
    utils_class: str = 'sparklyr.Utils'
    repartition_class: str = 'sparklyr.Repartition'
    catalog_class: str = 'sparklyr.Catalog'
    transformer_class: str = 'sparklyr.Transformers'

    @classmethod
    def from_env(cls, **kwargs) -> Self:
        '''
        Build options letting `REMOTE_DB_*` environment variables override
        the defaults, explicit `kwargs` win over both.

        '''
        env_map = {
            'name_prefix': 'REMOTE_DB_NAME_PREFIX',
            'persist_level': 'REMOTE_DB_PERSIST_LEVEL',
            'unique_id_level': 'REMOTE_DB_UNIQUE_ID_LEVEL',
        }
        params = {
            field: os.environ[var]
            for field, var in env_map.items()
            if os.getenv(var)
        }
        params.update(kwargs)
        return cls(**params)


@runtime_checkable
class Serializer(Protocol):
    '''
    Moves local frames into the engine and back, the wire format is its own
    business.

    '''
    def upload(
        self,
        conn: Connection,
        frame: pl.DataFrame,
        *,
        name: str,
        repartition: int = 0
    ) -> RemoteHandle:
        ...

    def download(self, handle: RemoteHandle) -> pl.DataFrame:
        ...


CatalogListener = Callable[['Connection', str], None]


class Connection:
    '''
    One engine session: the transport calls go through, the engine version
    feature gates read and the table name namespace (`registry`) imports and
    registrations must respect.

    A connection assumes at most one call in flight, share it between
    threads only behind a lock or a `BridgeExecutor`.

    '''
    def __init__(
        self,
        transport: Transport,
        *,
        id: str | None = None,
        version: str | Version | None = None,
        serializer: Serializer | None = None,
        options: ConnectionOptions | None = None,
        log: Logger = log
    ) -> None:
        self.id = id or uuid4().hex[:8]
        self.transport = transport
        self.serializer = serializer
        self.options = options or ConnectionOptions.from_env()
        self._log = log

        self._version: Version | None = (
            parse_version(version) if version is not None else None
        )
        self._listeners: list[CatalogListener] = []

        self.registry = TableRegistry(self)

    def __repr__(self) -> str:
        return f'<Connection {self.id}>'

    @property
    def engine_version(self) -> Version:
        '''
        Version reported by the engine, asked for once and cached.

        '''
        if self._version is None:
            raw = invoke_static(self, self.options.utils_class, 'engineVersion')
            self._version = parse_version(raw)
            self._log.debug(f'[{self.id}] engine version {self._version}')

        return self._version

    def supports(self, min_version: str) -> bool:
        return self.engine_version >= parse_version(min_version)

    def on_catalog_changed(self, listener: CatalogListener) -> CatalogListener:
        self._listeners.append(listener)
        return listener

    def remove_listener(self, listener: CatalogListener) -> None:
        self._listeners.remove(listener)

    def notify_catalog_changed(self, name: str) -> None:
        for listener in tuple(self._listeners):
            listener(self, name)

    def tables(self) -> list[str]:
        return self.registry.names()

    def table(self, name: str) -> TableRef:
        '''
        Reference to the table currently registered as `name`.

        '''
        return self.registry.lookup(name)
