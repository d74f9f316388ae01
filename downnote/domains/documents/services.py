from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid

from downnote.core.config import settings
from downnote.db.repositories.document_repository import DocumentRepository
from downnote.domains.documents.entities import Document, Snapshot, utcnow
from downnote.domains.documents.schemas import DocumentCreate, DocumentUpdate
from downnote.domains.documents.store import DocumentStore
from downnote.domains.documents.titles import DEFAULT_TITLE, extract_title_from_markdown
from downnote.domains.versioning.errors import StoreUnavailableError
from downnote.domains.versioning.migration import MigrationResult, MigrationService
from downnote.domains.versioning.policy import VersionDecision, VersionDecisionPolicy
from downnote.domains.versioning.restore import RestoreCoordinator
from downnote.domains.versioning.retention import RetentionManager
from downnote.domains.versioning.stats import content_stats
from downnote.infrastructure.local_storage import LocalStore

logger = logging.getLogger(__name__)


class DocumentService:
    """Сервис для работы с документами"""

    def __init__(
        self,
        store: DocumentStore,
        policy: Optional[VersionDecisionPolicy] = None,
        retention: Optional[RetentionManager] = None
    ):
        self.store = store
        self.policy = policy or VersionDecisionPolicy.from_settings(settings)
        self.retention = retention or RetentionManager(store, settings.version_retention_count)

    @classmethod
    def for_session(cls, session: AsyncSession) -> "DocumentService":
        return cls(DocumentRepository(session))

    async def create_document(self, document_data: DocumentCreate, owner_id: uuid.UUID) -> Document:
        """Создание нового документа (без снимка)"""
        title = document_data.title
        if not title:
            title = extract_title_from_markdown(document_data.body) if document_data.body else DEFAULT_TITLE

        return await self.store.create_document(title, document_data.body, owner_id)

    async def get_document(self, document_uuid: uuid.UUID, owner_id: uuid.UUID) -> Document:
        """Получение документа по UUID"""
        return await self.store.get_document(document_uuid, owner_id)

    async def get_user_documents(self, owner_id: uuid.UUID) -> List[Document]:
        """Получение документов пользователя"""
        return await self.store.list_documents(owner_id)

    async def update_document(
        self,
        document_uuid: uuid.UUID,
        update_data: DocumentUpdate,
        owner_id: uuid.UUID
    ) -> Document:
        """Обновление документа и, если нужно, создание снимка.

        Сбои версионирования не мешают сохранению: они только логируются.
        """
        await self.store.get_document(document_uuid, owner_id)

        title = update_data.title
        if update_data.body is not None and title is None:
            title = extract_title_from_markdown(update_data.body)

        decision = None
        if update_data.body is not None:
            decision = await self._decide(document_uuid, update_data.body)

        document = await self.store.update_document(
            document_uuid,
            title=title,
            body=update_data.body,
            expected_version=update_data.version
        )

        if decision is not None and decision.should_snapshot:
            await self._snapshot(document, decision)

        return document

    async def _decide(self, document_uuid: uuid.UUID, body: str) -> Optional[VersionDecision]:
        try:
            latest = await self.store.get_latest_snapshot(document_uuid)
        except StoreUnavailableError as e:
            logger.warning(f"Version history not available for document {document_uuid}: {e}")
            return None

        return self.policy.decide(
            body,
            latest.body if latest else None,
            latest.created_at if latest else None,
            now=utcnow()
        )

    async def _snapshot(self, document: Document, decision: VersionDecision) -> None:
        stats = content_stats(document.body)
        try:
            await self.store.create_snapshot(
                document.uuid,
                title=document.title,
                body=document.body,
                char_count=stats.char_count,
                word_count=stats.word_count
            )
        except StoreUnavailableError as e:
            logger.error(f"Failed to create version for document {document.uuid}: {e}")
            return

        logger.info(f"Created version of document {document.uuid} ({decision.reason.value})")
        await self.retention.prune(document.uuid)

    async def delete_document(self, document_uuid: uuid.UUID, owner_id: uuid.UUID) -> None:
        """Удаление документа вместе с историей"""
        await self.store.get_document(document_uuid, owner_id)
        await self.store.delete_document(document_uuid)

    async def migrate_guest_documents(
        self,
        local_store: LocalStore,
        owner_id: uuid.UUID
    ) -> MigrationResult:
        """Перенос гостевых документов в аккаунт при входе"""
        service = MigrationService(
            self.store,
            local_store,
            owner_id,
            welcome_title=settings.welcome_document_title,
            welcome_prefix=settings.welcome_document_prefix
        )
        return await service.migrate()


class DocumentVersionService:
    """Сервис для работы с версиями документов"""

    def __init__(self, store: DocumentStore, retention: Optional[RetentionManager] = None):
        self.store = store
        self.retention = retention or RetentionManager(store, settings.version_retention_count)

    @classmethod
    def for_session(cls, session: AsyncSession) -> "DocumentVersionService":
        return cls(DocumentRepository(session))

    async def get_document_versions(self, document_uuid: uuid.UUID, owner_id: uuid.UUID) -> List[Snapshot]:
        """История документа, новые первыми"""
        await self.store.get_document(document_uuid, owner_id)
        return await self.store.list_snapshots(document_uuid)

    async def get_document_version(
        self,
        document_uuid: uuid.UUID,
        snapshot_uuid: uuid.UUID,
        owner_id: uuid.UUID
    ) -> Snapshot:
        """Получение конкретной версии документа"""
        await self.store.get_document(document_uuid, owner_id)
        return await self.store.get_snapshot(snapshot_uuid, document_uuid)

    async def restore_version(
        self,
        document_uuid: uuid.UUID,
        snapshot_uuid: uuid.UUID,
        owner_id: uuid.UUID
    ) -> Document:
        """Восстановление документа из версии"""
        coordinator = RestoreCoordinator(self.store, self.retention)
        return await coordinator.restore(document_uuid, snapshot_uuid, owner_id)
