import enum
from typing import List
import logging
import uuid

from downnote.domains.documents.entities import Document
from downnote.domains.documents.store import DocumentStore
from downnote.domains.versioning.errors import (
    ConcurrentModificationError, NotFoundError, RestoreFailedError, StoreUnavailableError
)
from downnote.domains.versioning.retention import RetentionManager
from downnote.domains.versioning.stats import content_stats

logger = logging.getLogger(__name__)


class RestoreState(str, enum.Enum):
    IDLE = "idle"
    SNAPSHOTTING_CURRENT = "snapshotting_current"
    OVERWRITING = "overwriting"
    PRUNING = "pruning"
    DONE = "done"
    FAILED = "failed"


class RestoreCoordinator:
    """Восстановление документа из снимка.

    Порядок строгий: сначала снимок текущего состояния,
    затем перезапись документа, затем очистка истории.
    Снимок и перезапись выполняются в одной транзакции хранилища.
    Экземпляр рассчитан на одно восстановление.
    """
    
    def __init__(self, store: DocumentStore, retention: RetentionManager):
        self.store = store
        self.retention = retention
        self.state = RestoreState.IDLE
        self.history: List[RestoreState] = [RestoreState.IDLE]
    
    def _enter(self, state: RestoreState) -> None:
        self.state = state
        self.history.append(state)
    
    async def restore(
        self,
        document_id: uuid.UUID,
        snapshot_id: uuid.UUID,
        owner_id: uuid.UUID
    ) -> Document:
        """Восстановление документа из версии"""
        if self.state != RestoreState.IDLE:
            raise RuntimeError("RestoreCoordinator instance has already been used")
        
        try:
            document = await self.store.get_document(document_id, owner_id)
            target = await self.store.get_snapshot(snapshot_id, document_id)
        except (NotFoundError, StoreUnavailableError):
            self._enter(RestoreState.FAILED)
            raise
        
        try:
            async with self.store.atomic():
                self._enter(RestoreState.SNAPSHOTTING_CURRENT)
                stats = content_stats(document.body)
                await self.store.create_snapshot(
                    document_id,
                    title=document.title,
                    body=document.body,
                    char_count=stats.char_count,
                    word_count=stats.word_count
                )
                
                self._enter(RestoreState.OVERWRITING)
                restored = await self.store.update_document(
                    document_id,
                    title=target.title,
                    body=target.body,
                    expected_version=document.version
                )
        except (ConcurrentModificationError, NotFoundError):
            self._enter(RestoreState.FAILED)
            raise
        except StoreUnavailableError as e:
            failed_step = self.state.value
            self._enter(RestoreState.FAILED)
            logger.error(f"Restore of document {document_id} failed at {failed_step}: {e}")
            raise RestoreFailedError(
                failed_step,
                "Could not preserve the current state of the document; restore aborted"
                if failed_step == RestoreState.SNAPSHOTTING_CURRENT.value
                else "Could not overwrite the document; restore aborted"
            ) from e
        
        self._enter(RestoreState.PRUNING)
        await self.retention.prune(document_id)
        
        self._enter(RestoreState.DONE)
        logger.info(f"Document {document_id} restored from version {snapshot_id}")
        return restored
