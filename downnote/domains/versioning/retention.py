from typing import Optional
import logging
import uuid

from downnote.domains.documents.store import DocumentStore
from downnote.domains.versioning.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_COUNT = 20


class RetentionManager:
    """Ограничение истории документа N последними снимками"""
    
    def __init__(self, store: DocumentStore, default_retention_count: int = DEFAULT_RETENTION_COUNT):
        self.store = store
        self.default_retention_count = default_retention_count
    
    async def prune(self, document_id: uuid.UUID, retention_count: Optional[int] = None) -> int:
        """Удаление самых старых снимков сверх лимита.

        Идемпотентна. Ошибка хранилища только логируется и дает 0.
        """
        if retention_count is None:
            retention_count = self.default_retention_count
        if retention_count < 1:
            raise ValueError("retention_count must be at least 1")
        
        try:
            count = await self.store.count_snapshots(document_id)
            if count <= retention_count:
                return 0
            
            keep_ids = await self.store.list_snapshot_ids_newest_first(document_id, retention_count)
            deleted = await self.store.delete_snapshots_except(document_id, keep_ids)
        except StoreUnavailableError as e:
            logger.warning(f"Failed to prune versions for document {document_id}: {e}")
            return 0
        
        logger.info(f"Pruned {deleted} old versions of document {document_id}")
        return deleted
