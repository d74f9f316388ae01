from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from downnote.core.db import get_db
from downnote.core.security import get_current_owner
from downnote.domains.documents.schemas import (
    DocumentCreate, DocumentUpdate, DocumentResponse, DocumentListResponse,
    VersionSummaryResponse, VersionResponse, VersionListResponse,
    GuestMigrationRequest, GuestMigrationResponse
)
from downnote.domains.documents.services import DocumentService, DocumentVersionService
from downnote.domains.versioning.errors import (
    VersioningError, NotFoundError, ValidationError, ConcurrentModificationError,
    StoreUnavailableError, RestoreFailedError
)
from downnote.infrastructure.local_storage import InMemoryLocalStore, parse_local_documents

router = APIRouter(prefix="/documents", tags=["documents"])


def _http_error(error: VersioningError) -> HTTPException:
    """Перевод доменной ошибки в HTTP ответ"""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(error))
    if isinstance(error, ConcurrentModificationError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, (StoreUnavailableError, RestoreFailedError)):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


@router.post("/", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    document_data: DocumentCreate,
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Создание нового документа"""
    document_service = DocumentService.for_session(db)

    try:
        document = await document_service.create_document(document_data, owner_id)
    except VersioningError as e:
        raise _http_error(e)

    return DocumentResponse.from_entity(document)


@router.get("/", response_model=DocumentListResponse)
async def get_user_documents(
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Получение списка документов"""
    document_service = DocumentService.for_session(db)

    try:
        documents = await document_service.get_user_documents(owner_id)
    except VersioningError as e:
        raise _http_error(e)

    return DocumentListResponse(
        documents=[DocumentResponse.from_entity(doc) for doc in documents],
        total=len(documents)
    )


@router.post("/migrate-guest", response_model=GuestMigrationResponse)
async def migrate_guest_documents(
    migration_request: GuestMigrationRequest,
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Перенос гостевых документов в аккаунт при первом входе"""
    document_service = DocumentService.for_session(db)

    try:
        local_store = InMemoryLocalStore(parse_local_documents(migration_request.documents))
        result = await document_service.migrate_guest_documents(local_store, owner_id)
    except VersioningError as e:
        raise _http_error(e)

    return GuestMigrationResponse(
        success=result.success,
        migrated_count=result.migrated_count,
        skipped_count=result.skipped_count,
        errors=result.errors,
        migrated_ids=result.migrated_ids,
        clear_local_storage=result.local_cleared
    )


@router.get("/{document_uuid}", response_model=DocumentResponse)
async def get_document(
    document_uuid: uuid.UUID,
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Получение документа по UUID"""
    document_service = DocumentService.for_session(db)

    try:
        document = await document_service.get_document(document_uuid, owner_id)
    except VersioningError as e:
        raise _http_error(e)

    return DocumentResponse.from_entity(document)


@router.patch("/{document_uuid}", response_model=DocumentResponse)
async def update_document(
    document_uuid: uuid.UUID,
    update_data: DocumentUpdate,
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Обновление документа"""
    document_service = DocumentService.for_session(db)

    try:
        document = await document_service.update_document(document_uuid, update_data, owner_id)
    except VersioningError as e:
        raise _http_error(e)

    return DocumentResponse.from_entity(document)


@router.delete("/{document_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_uuid: uuid.UUID,
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Удаление документа"""
    document_service = DocumentService.for_session(db)

    try:
        await document_service.delete_document(document_uuid, owner_id)
    except VersioningError as e:
        raise _http_error(e)


# Версии документов
@router.get("/{document_uuid}/versions", response_model=VersionListResponse)
async def get_document_versions(
    document_uuid: uuid.UUID,
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Получение истории документа (без текста версий)"""
    version_service = DocumentVersionService.for_session(db)

    try:
        versions = await version_service.get_document_versions(document_uuid, owner_id)
    except VersioningError as e:
        raise _http_error(e)

    return VersionListResponse(
        versions=[VersionSummaryResponse.model_validate(version) for version in versions]
    )


@router.get("/{document_uuid}/versions/{version_uuid}", response_model=VersionResponse)
async def get_document_version(
    document_uuid: uuid.UUID,
    version_uuid: uuid.UUID,
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Получение версии с текстом для подтверждения восстановления"""
    version_service = DocumentVersionService.for_session(db)

    try:
        version = await version_service.get_document_version(document_uuid, version_uuid, owner_id)
    except VersioningError as e:
        raise _http_error(e)

    return VersionResponse.model_validate(version)


@router.post("/{document_uuid}/versions/{version_uuid}/restore", response_model=DocumentResponse)
async def restore_document_version(
    document_uuid: uuid.UUID,
    version_uuid: uuid.UUID,
    owner_id: uuid.UUID = Depends(get_current_owner),
    db: AsyncSession = Depends(get_db)
):
    """Восстановление документа из версии"""
    version_service = DocumentVersionService.for_session(db)

    try:
        document = await version_service.restore_version(document_uuid, version_uuid, owner_id)
    except VersioningError as e:
        raise _http_error(e)

    return DocumentResponse.from_entity(document)
