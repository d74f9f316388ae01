import uuid
from datetime import datetime, timezone
from typing import Optional

from downnote.domains.versioning.stats import content_stats


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document:
    """Сущность документа домена Documents"""
    
    def __init__(
        self,
        uuid: uuid.UUID,
        title: str,
        body: str = "",
        version: int = 1,
        owner_id: uuid.UUID = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.title = title
        self.body = body
        self.version = version
        self.owner_id = owner_id
        self.created_at = created_at or utcnow()
        self.updated_at = updated_at or utcnow()
    
    def get_content_length(self) -> int:
        """Получение длины содержимого документа"""
        return content_stats(self.body).char_count
    
    def get_word_count(self) -> int:
        """Подсчет количества слов в документе"""
        return content_stats(self.body).word_count
    
    @classmethod
    def create_document(cls, title: str, owner_id: uuid.UUID, body: str = "") -> "Document":
        """Создание нового документа"""
        return cls(
            uuid=uuid.uuid4(),
            title=title,
            body=body,
            version=1,
            owner_id=owner_id
        )
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Document):
            return False
        return self.uuid == other.uuid
    
    def __repr__(self) -> str:
        return f"Document(uuid={self.uuid}, title={self.title}, version={self.version})"


class Snapshot:
    """Неизменяемый полный снимок документа"""
    
    def __init__(
        self,
        uuid: uuid.UUID,
        document_id: uuid.UUID,
        title: str,
        body: str,
        char_count: int,
        word_count: int,
        sequence: int = 0,
        created_at: Optional[datetime] = None
    ):
        self.uuid = uuid
        self.document_id = document_id
        self.title = title
        self.body = body
        self.char_count = char_count
        self.word_count = word_count
        self.sequence = sequence
        self.created_at = created_at or utcnow()
    
    def __eq__(self, other) -> bool:
        if not isinstance(other, Snapshot):
            return False
        return self.uuid == other.uuid
    
    def __repr__(self) -> str:
        return f"Snapshot(uuid={self.uuid}, document_id={self.document_id}, sequence={self.sequence})"
