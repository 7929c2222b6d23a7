'''
# Table registry

Per connection view of the engine's table name namespace.

Invariant: within one connection a name maps to at most one live registered
table. Registering under a taken name either fails (`TableExistsError`) or
drops the previous table first, never both live at once. The check and the
insert run under `lock` so concurrent imports of the same name can't
interleave.

'''
from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from remote_db._utils import ensure_name, generate_unique_name
from remote_db.bridge import RemoteHandle, invoke, invoke_static
from remote_db.errors import TableExistsError, UnknownTableError
from remote_db.table import TableRef

if TYPE_CHECKING:
    from remote_db.connection import Connection


log = logging.getLogger(__name__)


class TableRegistry:
    def __init__(self, conn: Connection) -> None:
        self._conn = conn
        self._live: dict[str, TableRef] = {}
        self.lock = threading.RLock()

    @property
    def _catalog(self) -> str:
        return self._conn.options.catalog_class

    def names(self) -> list[str]:
        return list(invoke_static(self._conn, self._catalog, 'tableNames'))

    def exists(self, name: str) -> bool:
        return name in self.names()

    def __contains__(self, name: str) -> bool:
        return self.exists(name)

    def get(self, name: str) -> TableRef | None:
        '''
        Live reference recorded for `name` by this process, if any.

        '''
        return self._live.get(name)

    def lookup(self, name: str) -> TableRef:
        with self.lock:
            if not self.exists(name):
                self._live.pop(name, None)
                raise UnknownTableError(name)

            ref = self._live.get(name)
            if ref is None:
                handle = invoke_static(self._conn, self._catalog, 'table', name)
                ref = TableRef(handle, name)
                self._live[name] = ref

            return ref

    def remove_if_exists(self, name: str) -> bool:
        '''
        Drop `name` from the engine catalog, returns whether anything was
        removed. Safe to call repeatedly.

        '''
        with self.lock:
            self._live.pop(name, None)
            if not self.exists(name):
                return False

            invoke_static(self._conn, self._catalog, 'dropTempView', name)
            log.debug(f'[{self._conn.id}] dropped table {name}')
            return True

    def register(
        self,
        handle: RemoteHandle,
        name: str | None = None,
        *,
        overwrite: bool = True,
        notify: bool = True
    ) -> TableRef:
        '''
        Give the remote frame behind `handle` a table name and return the named
        reference. Fires the connection's catalog changed hook once on
        success, after releasing `lock`. Callers already holding `lock` pass
        `notify=False` and fire it themselves once they let go.

        '''
        name = (
            ensure_name(name)
            if name is not None
            else generate_unique_name(self._conn.options.name_prefix)
        )

        with self.lock:
            if overwrite:
                self.remove_if_exists(name)

            elif self.exists(name):
                raise TableExistsError(name)

            invoke(handle, 'registerTempTable', name)
            ref = TableRef(handle, name)
            self._live[name] = ref

        log.debug(f'[{self._conn.id}] registered {handle!r} as {name}')
        if notify:
            self._conn.notify_catalog_changed(name)

        return ref
