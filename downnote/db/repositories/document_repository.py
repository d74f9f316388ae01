from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional, Sequence
import logging
import uuid

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from downnote.db.models.document import Document as DocumentModel, DocumentSnapshot as DocumentSnapshotModel
from downnote.domains.documents.entities import Document, Snapshot
from downnote.domains.documents.store import DocumentStore
from downnote.domains.versioning.errors import (
    ConcurrentModificationError, NotFoundError, StoreUnavailableError
)

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite возвращает наивные datetime, все времена хранятся в UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DocumentRepository(DocumentStore):
    """Репозиторий документов и их снимков поверх AsyncSession"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self._in_atomic = False

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Все операции внутри блока фиксируются одним commit"""
        if self._in_atomic:
            yield
            return

        self._in_atomic = True
        try:
            yield
        except Exception:
            self._in_atomic = False
            await self.session.rollback()
            raise
        self._in_atomic = False

        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreUnavailableError(f"Failed to commit transaction: {exc}") from exc

    @asynccontextmanager
    async def _guard(self, action: str) -> AsyncIterator[None]:
        """Перевод ошибок SQLAlchemy в StoreUnavailableError"""
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error(f"Store failure during {action}: {exc}")
            if not self._in_atomic:
                await self.session.rollback()
            raise StoreUnavailableError(f"Store unavailable during {action}") from exc

    async def _commit(self) -> None:
        if self._in_atomic:
            await self.session.flush()
        else:
            await self.session.commit()

    async def _fetch_document(self, document_id: uuid.UUID) -> Optional[DocumentModel]:
        result = await self.session.execute(
            select(DocumentModel)
            .where(DocumentModel.uuid == document_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_document(self, document_id: uuid.UUID, owner_id: uuid.UUID) -> Document:
        """Получение документа владельца"""
        async with self._guard("get_document"):
            result = await self.session.execute(
                select(DocumentModel)
                .where(DocumentModel.uuid == document_id, DocumentModel.owner_id == owner_id)
                .execution_options(populate_existing=True)
            )
            db_document = result.scalar_one_or_none()

        if not db_document:
            raise NotFoundError()
        return self._document_to_domain(db_document)

    async def list_documents(self, owner_id: uuid.UUID) -> List[Document]:
        """Документы владельца, последние измененные первыми"""
        async with self._guard("list_documents"):
            result = await self.session.execute(
                select(DocumentModel)
                .where(DocumentModel.owner_id == owner_id)
                .order_by(DocumentModel.updated_at.desc())
            )
            db_documents = result.scalars().all()
        return [self._document_to_domain(doc) for doc in db_documents]

    async def create_document(self, title: str, body: str, owner_id: uuid.UUID) -> Document:
        """Создание нового документа"""
        document = Document.create_document(title=title, owner_id=owner_id, body=body)
        db_document = DocumentModel(
            uuid=document.uuid,
            title=document.title,
            body=document.body,
            version=document.version,
            owner_id=document.owner_id
        )

        async with self._guard("create_document"):
            self.session.add(db_document)
            await self._commit()
            await self.session.refresh(db_document)
        return self._document_to_domain(db_document)

    async def update_document(
        self,
        document_id: uuid.UUID,
        title: Optional[str] = None,
        body: Optional[str] = None,
        expected_version: Optional[int] = None
    ) -> Document:
        """Обновление документа с проверкой номера версии (если передан)"""
        values = {
            "version": DocumentModel.version + 1,
            "updated_at": datetime.now(timezone.utc)
        }
        if title is not None:
            values["title"] = title
        if body is not None:
            values["body"] = body

        stmt = update(DocumentModel).where(DocumentModel.uuid == document_id)
        if expected_version is not None:
            stmt = stmt.where(DocumentModel.version == expected_version)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        async with self._guard("update_document"):
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                existing = await self._fetch_document(document_id)
                if not self._in_atomic:
                    await self.session.rollback()
                if existing is None:
                    raise NotFoundError()
                raise ConcurrentModificationError(document_id, expected_version)
            await self._commit()
            db_document = await self._fetch_document(document_id)

        return self._document_to_domain(db_document)

    async def delete_document(self, document_id: uuid.UUID) -> None:
        """Удаление документа вместе со всеми снимками"""
        async with self._guard("delete_document"):
            await self.session.execute(
                delete(DocumentSnapshotModel)
                .where(DocumentSnapshotModel.document_id == document_id)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(
                delete(DocumentModel)
                .where(DocumentModel.uuid == document_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                if not self._in_atomic:
                    await self.session.rollback()
                raise NotFoundError()
            await self._commit()

    async def get_latest_snapshot(self, document_id: uuid.UUID) -> Optional[Snapshot]:
        """Самый новый снимок документа"""
        async with self._guard("get_latest_snapshot"):
            result = await self.session.execute(
                select(DocumentSnapshotModel)
                .where(DocumentSnapshotModel.document_id == document_id)
                .order_by(DocumentSnapshotModel.created_at.desc(), DocumentSnapshotModel.sequence.desc())
                .limit(1)
            )
            db_snapshot = result.scalar_one_or_none()
        return self._snapshot_to_domain(db_snapshot) if db_snapshot else None

    async def get_snapshot(self, snapshot_id: uuid.UUID, document_id: uuid.UUID) -> Snapshot:
        """Снимок по паре (снимок, документ); чужие снимки не отдаются"""
        async with self._guard("get_snapshot"):
            result = await self.session.execute(
                select(DocumentSnapshotModel).where(
                    DocumentSnapshotModel.uuid == snapshot_id,
                    DocumentSnapshotModel.document_id == document_id
                )
            )
            db_snapshot = result.scalar_one_or_none()

        if not db_snapshot:
            raise NotFoundError()
        return self._snapshot_to_domain(db_snapshot)

    async def list_snapshots(self, document_id: uuid.UUID) -> List[Snapshot]:
        """История документа, новые первыми"""
        async with self._guard("list_snapshots"):
            result = await self.session.execute(
                select(DocumentSnapshotModel)
                .where(DocumentSnapshotModel.document_id == document_id)
                .order_by(DocumentSnapshotModel.created_at.desc(), DocumentSnapshotModel.sequence.desc())
            )
            db_snapshots = result.scalars().all()
        return [self._snapshot_to_domain(snapshot) for snapshot in db_snapshots]

    async def create_snapshot(
        self,
        document_id: uuid.UUID,
        title: str,
        body: str,
        char_count: int,
        word_count: int
    ) -> Snapshot:
        """Создание снимка со следующим порядковым номером"""
        async with self._guard("create_snapshot"):
            result = await self.session.execute(
                select(func.coalesce(func.max(DocumentSnapshotModel.sequence), 0))
                .where(DocumentSnapshotModel.document_id == document_id)
            )
            sequence = result.scalar() + 1

            db_snapshot = DocumentSnapshotModel(
                uuid=uuid.uuid4(),
                document_id=document_id,
                title=title,
                body=body,
                char_count=char_count,
                word_count=word_count,
                sequence=sequence
            )
            self.session.add(db_snapshot)
            await self._commit()
            await self.session.refresh(db_snapshot)
        return self._snapshot_to_domain(db_snapshot)

    async def count_snapshots(self, document_id: uuid.UUID) -> int:
        """Подсчет количества снимков документа"""
        async with self._guard("count_snapshots"):
            result = await self.session.execute(
                select(func.count(DocumentSnapshotModel.uuid))
                .where(DocumentSnapshotModel.document_id == document_id)
            )
            return result.scalar()

    async def list_snapshot_ids_newest_first(self, document_id: uuid.UUID, limit: int) -> List[uuid.UUID]:
        async with self._guard("list_snapshot_ids_newest_first"):
            result = await self.session.execute(
                select(DocumentSnapshotModel.uuid)
                .where(DocumentSnapshotModel.document_id == document_id)
                .order_by(DocumentSnapshotModel.created_at.desc(), DocumentSnapshotModel.sequence.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def delete_snapshots_except(self, document_id: uuid.UUID, keep_ids: Sequence[uuid.UUID]) -> int:
        """Удаление всех снимков документа, кроме keep_ids"""
        stmt = delete(DocumentSnapshotModel).where(DocumentSnapshotModel.document_id == document_id)
        if keep_ids:
            stmt = stmt.where(DocumentSnapshotModel.uuid.notin_(list(keep_ids)))

        async with self._guard("delete_snapshots_except"):
            result = await self.session.execute(stmt.execution_options(synchronize_session=False))
            await self._commit()
            return result.rowcount

    def _document_to_domain(self, db_document: DocumentModel) -> Document:
        """Преобразование модели БД в доменную сущность"""
        return Document(
            uuid=db_document.uuid,
            title=db_document.title,
            body=db_document.body,
            version=db_document.version,
            owner_id=db_document.owner_id,
            created_at=_aware(db_document.created_at),
            updated_at=_aware(db_document.updated_at)
        )

    def _snapshot_to_domain(self, db_snapshot: DocumentSnapshotModel) -> Snapshot:
        return Snapshot(
            uuid=db_snapshot.uuid,
            document_id=db_snapshot.document_id,
            title=db_snapshot.title,
            body=db_snapshot.body,
            char_count=db_snapshot.char_count,
            word_count=db_snapshot.word_count,
            sequence=db_snapshot.sequence,
            created_at=_aware(db_snapshot.created_at)
        )
