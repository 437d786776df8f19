from abc import ABC, abstractmethod


class BaseDBConnectionService(ABC):
    db = None

    @abstractmethod
    async def _connect(self, **kwargs):
        raise NotImplementedError()

    async def connect(self):
        if self.db is None:
            return await self._connect()
        return self.db
