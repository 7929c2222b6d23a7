'''
Glossary:
    - Engine: the remote distributed table processing system we proxy into.
    - Handle: opaque reference to an object living in the engine, scoped to one
      connection.
    - TableRef: named (registered) or unnamed proxy for a remote table, what
      most operations return.
    - Materialization: forcing deferred computation to run and optionally
      keeping the result so later reads are stable.
    - Lineage: the deferred chain of operations behind a table, checkpointing
      truncates it.
    - Storage level: symbolic tag describing where/how a materialized table is
      cached, passed to the engine as is.

'''

from .bridge import (
    Call as Call,
    RemoteHandle as RemoteHandle,
    Transport as Transport,
    invoke as invoke,
    invoke_static as invoke_static,
)

from .connection import (
    Connection as Connection,
    ConnectionOptions as ConnectionOptions,
    Serializer as Serializer,
    StorageLevels as StorageLevels,
)

from .errors import (
    RemoteDBError as RemoteDBError,
    TableExistsError as TableExistsError,
    UnknownColumnError as UnknownColumnError,
    UnknownTableError as UnknownTableError,
    InvalidArgumentError as InvalidArgumentError,
    UnsupportedVersionError as UnsupportedVersionError,
    InvocationError as InvocationError,
)

from .table import TableRef as TableRef

from .table._import import (
    copy_to as copy_to,
    sdf_import as sdf_import,
    sdf_register as sdf_register,
)

from .transform import (
    TransformStep as TransformStep,
    sdf_mutate as sdf_mutate,
    step as step,
)

from .lifecycle import (
    PartitionSpec as PartitionSpec,
    broadcast as broadcast,
    checkpoint as checkpoint,
    coalesce as coalesce,
    num_partitions as num_partitions,
    persist as persist,
    repartition as repartition,
    sample as sample,
    sort as sort,
)

from .identity import (
    last_index as last_index,
    with_sequential_id as with_sequential_id,
    with_unique_id as with_unique_id,
)

from .stats import (
    describe as describe,
    quantile as quantile,
)
