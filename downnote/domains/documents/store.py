"""Интерфейс хранилища документов, которым пользуется ядро версионирования."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence
import uuid

from downnote.domains.documents.entities import Document, Snapshot


class DocumentStore(ABC):
    """Хранилище документов аккаунта и их снимков.

    Сбои бэкенда поднимаются как StoreUnavailableError, отсутствующие
    записи - как NotFoundError.
    """

    @abstractmethod
    async def get_document(self, document_id: uuid.UUID, owner_id: uuid.UUID) -> Document:
        ...

    @abstractmethod
    async def list_documents(self, owner_id: uuid.UUID) -> List[Document]:
        ...

    @abstractmethod
    async def create_document(self, title: str, body: str, owner_id: uuid.UUID) -> Document:
        ...

    @abstractmethod
    async def update_document(
        self,
        document_id: uuid.UUID,
        title: Optional[str] = None,
        body: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> Document:
        ...

    @abstractmethod
    async def delete_document(self, document_id: uuid.UUID) -> None:
        ...

    @abstractmethod
    async def get_latest_snapshot(self, document_id: uuid.UUID) -> Optional[Snapshot]:
        ...

    @abstractmethod
    async def get_snapshot(self, snapshot_id: uuid.UUID, document_id: uuid.UUID) -> Snapshot:
        ...

    @abstractmethod
    async def list_snapshots(self, document_id: uuid.UUID) -> List[Snapshot]:
        ...

    @abstractmethod
    async def create_snapshot(
        self,
        document_id: uuid.UUID,
        title: str,
        body: str,
        char_count: int,
        word_count: int
    ) -> Snapshot:
        ...

    @abstractmethod
    async def count_snapshots(self, document_id: uuid.UUID) -> int:
        ...

    @abstractmethod
    async def list_snapshot_ids_newest_first(self, document_id: uuid.UUID, limit: int) -> List[uuid.UUID]:
        ...

    @abstractmethod
    async def delete_snapshots_except(self, document_id: uuid.UUID, keep_ids: Sequence[uuid.UUID]) -> int:
        ...

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Группа операций, фиксируемая целиком. По умолчанию без транзакции."""
        yield
