from dataclasses import dataclass, field
from typing import List, Optional
import logging
import uuid

from downnote.domains.documents.store import DocumentStore
from downnote.domains.documents.titles import MAX_TITLE_LENGTH
from downnote.domains.versioning.errors import VersioningError
from downnote.infrastructure.local_storage import LocalDocument, LocalStore

logger = logging.getLogger(__name__)

DEFAULT_WELCOME_TITLE = "Welcome to DownNote"
DEFAULT_WELCOME_PREFIX = "# Welcome to DownNote!"


@dataclass
class MigrationResult:
    success: bool = True
    migrated_count: int = 0
    errors: List[str] = field(default_factory=list)
    migrated_ids: List[str] = field(default_factory=list)
    skipped_count: int = 0
    local_cleared: bool = False


class MigrationService:
    """Перенос гостевых документов в аккаунт при первом входе.

    Локальное хранилище очищается только при полном успехе. При частичной
    ошибке все локальные документы остаются на месте; уже перенесенные
    перечислены в `migrated_ids`, и вызывающий код может убрать их через
    `LocalStore.remove` перед повтором. Без этого повтор создаст их снова.
    """
    
    def __init__(
        self,
        store: DocumentStore,
        local_store: LocalStore,
        owner_id: uuid.UUID,
        welcome_title: str = DEFAULT_WELCOME_TITLE,
        welcome_prefix: str = DEFAULT_WELCOME_PREFIX
    ):
        self.store = store
        self.local_store = local_store
        self.owner_id = owner_id
        self.welcome_title = welcome_title
        self.welcome_prefix = welcome_prefix
    
    def is_default_welcome_document(self, document: LocalDocument) -> bool:
        """Неизмененный приветственный документ, созданный для гостя"""
        return document.title == self.welcome_title and document.body.startswith(self.welcome_prefix)
    
    async def migrate(self, local_documents: Optional[List[LocalDocument]] = None) -> MigrationResult:
        if local_documents is None:
            local_documents = self.local_store.list()
        
        result = MigrationResult()
        if not local_documents:
            return result
        
        pending = [doc for doc in local_documents if not self.is_default_welcome_document(doc)]
        result.skipped_count = len(local_documents) - len(pending)
        
        if not pending:
            self.local_store.clear()
            result.local_cleared = True
            return result
        
        for doc in pending:
            try:
                await self.store.create_document(doc.title[:MAX_TITLE_LENGTH], doc.body, self.owner_id)
            except VersioningError as e:
                logger.warning(f"Failed to migrate guest document {doc.id}: {e}")
                result.errors.append(f"Failed to migrate '{doc.title}' ({doc.id}): {e}")
                continue
            result.migrated_count += 1
            result.migrated_ids.append(doc.id)
        
        result.success = not result.errors
        if result.success:
            self.local_store.clear()
            result.local_cleared = True
        
        logger.info(
            f"Guest migration for owner {self.owner_id}: "
            f"{result.migrated_count} migrated, {len(result.errors)} failed, {result.skipped_count} skipped"
        )
        return result
