from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional, List, Any, Dict
import uuid
from datetime import datetime


class DocumentCreate(BaseModel):
    """Схема для создания документа"""
    title: Optional[str] = Field(None, max_length=255)
    body: str = Field(default="", max_length=1000000)  # 1MB max content
    
    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class DocumentUpdate(BaseModel):
    """Схема для обновления документа"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    body: Optional[str] = Field(None, max_length=1000000)
    # Номер версии, прочитанный клиентом; если передан, обновление условное
    version: Optional[int] = Field(None, ge=1)
    
    @field_validator('title')
    @classmethod
    def validate_title(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip() if v else v


class DocumentResponse(BaseModel):
    """Схема для ответа с данными документа"""
    uuid: uuid.UUID
    title: str
    body: str
    version: int
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    word_count: int
    char_count: int
    
    model_config = ConfigDict(from_attributes=True)
    
    @classmethod
    def from_entity(cls, document) -> "DocumentResponse":
        return cls(
            uuid=document.uuid,
            title=document.title,
            body=document.body,
            version=document.version,
            owner_id=document.owner_id,
            created_at=document.created_at,
            updated_at=document.updated_at,
            word_count=document.get_word_count(),
            char_count=document.get_content_length()
        )


class DocumentListResponse(BaseModel):
    """Схема для списка документов"""
    documents: List[DocumentResponse]
    total: int


class VersionSummaryResponse(BaseModel):
    """Элемент истории: без текста снимка"""
    id: uuid.UUID = Field(validation_alias="uuid")
    title: str
    created_at: datetime
    char_count: int
    word_count: int
    
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class VersionResponse(VersionSummaryResponse):
    """Один снимок с текстом, для подтверждения восстановления"""
    document_id: uuid.UUID
    body: str


class VersionListResponse(BaseModel):
    versions: List[VersionSummaryResponse]


class GuestMigrationRequest(BaseModel):
    """Гостевые документы клиента: [{id, title, body, createdAt, updatedAt}]"""
    documents: List[Dict[str, Any]] = Field(default_factory=list)


class GuestMigrationResponse(BaseModel):
    success: bool
    migrated_count: int
    skipped_count: int
    errors: List[str]
    migrated_ids: List[str]
    # Клиент очищает локальное хранилище только при True
    clear_local_storage: bool
