from functools import partial
from typing import Any, Callable, ParamSpec, Sequence, TypeVar

import anyio


P = ParamSpec('P')
T = TypeVar('T')


class BridgeExecutor:
    '''
    Async adapter for hosts that share one connection between tasks.

    Every core operation blocks until the engine answers, this runs them in a
    worker thread while the capacity limiter keeps at most `limit` calls in
    flight. Keep `limit=1` (the default) for a single engine session.

    '''
    def __init__(
        self,
        limit: int = 1
    ) -> None:
        self._limit = anyio.CapacityLimiter(limit)

    @property
    def in_flight(self) -> int:
        return int(self._limit.borrowed_tokens)

    async def run(
        self,
        fn: Callable[P, T],
        *args: P.args,
        **kwargs: P.kwargs
    ) -> T:
        async with self._limit:
            return await anyio.to_thread.run_sync(partial(fn, *args, **kwargs))

    async def run_all(
        self,
        calls: Sequence[Callable[[], Any]]
    ) -> list[Any]:
        '''
        Run `calls` in order, one after the other, returning all results.

        '''
        results = []
        async with self._limit:
            for call in calls:
                results.append(await anyio.to_thread.run_sync(call))

        return results
