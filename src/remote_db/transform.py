from __future__ import annotations

import logging
from typing import Any, Sequence

from remote_db._utils import ensure_name
from remote_db.bridge import RemoteHandle, invoke_static
from remote_db.errors import InvalidArgumentError, InvocationError
from remote_db.structs import FrozenStruct
from remote_db.table import TableLike, TableRef, resolve_handle
from remote_db.table._import import register_result


log = logging.getLogger(__name__)


class TransformStep(FrozenStruct, frozen=True):
    '''
    One pipeline stage: run engine transformer `transformer` reading
    `input_col` and writing `output_col`, `args` are appended to the call
    as is.

    '''
    transformer: str
    input_col: str
    output_col: str
    args: tuple[Any, ...] = ()


def step(
    transformer: str,
    input_col: str,
    output_col: str,
    *args: Any
) -> TransformStep:
    return TransformStep(
        transformer=ensure_name(transformer, 'transformer'),
        input_col=ensure_name(input_col, 'input_col'),
        output_col=ensure_name(output_col, 'output_col'),
        args=tuple(args),
    )


def _check_outputs(steps: Sequence[TransformStep]) -> None:
    seen: set[str] = set()
    dupes: list[str] = []
    for s in steps:
        if s.output_col in seen and s.output_col not in dupes:
            dupes.append(s.output_col)

        seen.add(s.output_col)

    if dupes:
        raise InvalidArgumentError(
            f'Pipeline output columns must be distinct, repeated: {", ".join(dupes)}'
        )


def sdf_mutate(
    x: TableLike,
    steps: Sequence[TransformStep],
    *,
    name: str | None = None
) -> TableRef:
    '''
    Run `steps` in order against `x`, each one sees every column the previous
    ones produced. The final frame gets registered (as `name` if given) only
    after all steps succeeded, a failing step raises its `InvocationError`
    and leaves the catalog untouched.

    '''
    steps = tuple(steps)
    for s in steps:
        if not isinstance(s, TransformStep):
            raise InvalidArgumentError(
                f'Expected TransformStep, got {type(s).__name__}'
            )

    _check_outputs(steps)

    running: RemoteHandle = resolve_handle(x)
    conn = running.connection
    tf_class = conn.options.transformer_class

    for i, s in enumerate(steps):
        log.debug(
            f'[{conn.id}] step {i}: {s.transformer}({s.input_col} -> {s.output_col})'
        )
        result = invoke_static(
            conn,
            tf_class,
            s.transformer,
            running,
            s.input_col,
            s.output_col,
            *s.args
        )
        if not isinstance(result, RemoteHandle):
            raise InvocationError(
                f'Transformer {s.transformer} did not return a frame'
            )

        running = result

    return register_result(running, name)
