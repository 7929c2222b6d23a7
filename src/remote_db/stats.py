from __future__ import annotations

from typing import Mapping, Sequence

from remote_db._utils import ensure_name
from remote_db.bridge import invoke
from remote_db.errors import (
    InvalidArgumentError,
    InvocationError,
    UnknownColumnError,
)
from remote_db.table import TableLike, TableRef, resolve_handle
from remote_db.table._import import register_result


default_probabilities: tuple[float, ...] = (0.0, 0.25, 0.5, 0.75, 1.0)


def quantile_label(p: float) -> str:
    '''
    Percentage label for probability `p` with 3 significant digits,
    `0.5 -> '50%'`, `1 / 3 -> '33.3%'`.

    '''
    return f'{p * 100:.3g}%'


def quantile(
    x: TableLike,
    column: str,
    probabilities: Sequence[float] | Mapping[str, float] = default_probabilities,
    relative_error: float = 1e-5,
) -> dict[str, float]:
    '''
    Approximate quantiles of numeric `column`, lower `relative_error` means
    more precision (and more work for the engine).

    Returns `{label: value}` in the order of `probabilities`, labels are the
    mapping keys if one was passed, percentages otherwise.

    '''
    ensure_name(column, 'column')

    try:
        if isinstance(probabilities, Mapping):
            labels = [str(k) for k in probabilities.keys()]
            probs = [float(p) for p in probabilities.values()]

        else:
            probs = [float(p) for p in probabilities]
            labels = [quantile_label(p) for p in probs]

    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(
            f'probabilities must be numbers, got {probabilities!r}'
        ) from e

    if not probs:
        raise InvalidArgumentError('must supply one or more probabilities')

    if out_of_range := [p for p in probs if not 0 <= p <= 1]:
        raise InvalidArgumentError(
            f'probabilities must be within [0, 1], got {out_of_range}'
        )

    if len(set(labels)) != len(labels):
        raise InvalidArgumentError(
            f'quantile labels collide: {labels}, pass a mapping of names instead'
        )

    relative_error = float(relative_error)
    if relative_error < 0:
        raise InvalidArgumentError(
            f'relative_error must be >= 0, got {relative_error}'
        )

    stat = invoke(resolve_handle(x), 'stat')
    values = invoke(stat, 'approxQuantile', column, probs, relative_error)

    if len(values) != len(probs):
        raise InvocationError(
            f'approxQuantile returned {len(values)} values for '
            f'{len(probs)} probabilities',
            method='approxQuantile'
        )

    return {
        label: float(v)
        for label, v in zip(labels, values, strict=True)
    }


def describe(
    x: TableLike,
    columns: Sequence[str] | None = None
) -> TableRef:
    '''
    Summary statistics (count, mean, stddev, min, max) of `columns`, all of
    them by default, as a new registered table.

    '''
    ref = x if isinstance(x, TableRef) else TableRef(resolve_handle(x))
    present = ref.columns

    if columns is None:
        columns = list(present)

    elif isinstance(columns, str):
        columns = [columns]

    if missing := tuple(c for c in columns if c not in present):
        raise UnknownColumnError(missing)

    return register_result(invoke(ref.handle, 'describe', list(columns)))
