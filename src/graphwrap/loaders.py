import asyncio
from typing import Any

from strawberry.dataloader import DataLoader

from .dispatch import RestDispatcher
from .exceptions import RestDispatchError


class ResourceLoader(DataLoader[str, Any]):
    """Per-request loader for REST detail views, keyed by request path.

    Repeated references to the same object within one GraphQL request are
    fetched once; distinct ones are dispatched concurrently.
    """

    def __init__(self, dispatcher: RestDispatcher):
        self.dispatcher = dispatcher
        super().__init__(load_fn=self._load_paths)

    async def _load_paths(self, paths: list[str]) -> list[Any]:
        results = await asyncio.gather(
            *(self.dispatcher.get(path) for path in paths), return_exceptions=True
        )
        loaded: list[Any] = []
        for result in results:
            # Propagate per-key failures; DataLoader raises them to that key's caller
            if isinstance(result, RestDispatchError):
                loaded.append(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                loaded.append(result)
        return loaded
