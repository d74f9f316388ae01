"""Локальное (гостевое) хранилище документов.

Гостевые документы живут вне аккаунта. Раньше это было глобальное
состояние клиента, теперь - явный объект, который передается в
MigrationService и в тесты.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional
import json
import logging
import uuid

from pydantic import (
    BaseModel, ConfigDict, Field, TypeAdapter, field_validator,
    ValidationError as PydanticValidationError
)

from downnote.domains.versioning.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Document"
DEFAULT_BODY = "# Untitled Document\n\nStart writing..."


class LocalDocument(BaseModel):
    """Запись гостевого документа: {id, title, body, createdAt, updatedAt}"""
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    body: str
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v):
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


_documents_adapter = TypeAdapter(List[LocalDocument])


def sort_newest_first(documents: Iterable[LocalDocument]) -> List[LocalDocument]:
    return sorted(documents, key=lambda doc: doc.updated_at, reverse=True)


def _valid_records(records) -> List[LocalDocument]:
    """Корректные записи массива; некорректные отбрасываются с записью в лог"""
    valid = []
    for record in records:
        try:
            valid.append(LocalDocument.model_validate(record))
        except PydanticValidationError:
            record_id = record.get("id") if isinstance(record, dict) else None
            logger.warning(f"Dropping malformed local document: {record_id}")
    return valid


def parse_local_documents(records) -> List[LocalDocument]:
    """Строгая проверка списка записей; любая ошибка - ValidationError"""
    try:
        return _documents_adapter.validate_python(records)
    except PydanticValidationError as exc:
        raise ValidationError(f"Malformed local documents payload: {exc.error_count()} error(s)") from exc


class LocalStore(ABC):
    """Область хранения гостевых документов"""

    @abstractmethod
    def list(self) -> List[LocalDocument]:
        """Все документы, последние измененные первыми"""

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def remove(self, document_ids: Iterable[str]) -> int:
        """Удаление указанных документов, возвращает число удаленных"""


class InMemoryLocalStore(LocalStore):
    """Область в памяти, например из тела запроса миграции"""

    def __init__(self, documents: Optional[Iterable[LocalDocument]] = None):
        self._documents = list(documents or [])
        self.cleared = False

    def list(self) -> List[LocalDocument]:
        return sort_newest_first(self._documents)

    def clear(self) -> None:
        self._documents = []
        self.cleared = True

    def remove(self, document_ids: Iterable[str]) -> int:
        ids = set(document_ids)
        before = len(self._documents)
        self._documents = [doc for doc in self._documents if doc.id not in ids]
        return before - len(self._documents)


class JsonFileLocalStore(LocalStore):
    """Гостевые документы в JSON файле: один массив записей"""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> List[LocalDocument]:
        if not self.path.exists():
            return []
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return []
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Local storage file {self.path} is corrupted") from exc
        if not isinstance(records, list):
            raise ValidationError(f"Local storage file {self.path} is corrupted")
        return _valid_records(records)

    def _write(self, documents: Iterable[LocalDocument]) -> None:
        records = [doc.to_record() for doc in sort_newest_first(documents)]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # запись целиком во временный файл, затем атомарная замена
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def list(self) -> List[LocalDocument]:
        return sort_newest_first(self._read())

    def get(self, document_id: str) -> Optional[LocalDocument]:
        for doc in self._read():
            if doc.id == document_id:
                return doc
        return None

    def create(self, title: Optional[str] = None, body: Optional[str] = None) -> LocalDocument:
        """Создание нового гостевого документа"""
        now = datetime.now(timezone.utc)
        document = LocalDocument(
            id=f"guest-{uuid.uuid4().hex}",
            title=title or DEFAULT_TITLE,
            body=body if body is not None else DEFAULT_BODY,
            created_at=now,
            updated_at=now
        )
        self._write([document, *self._read()])
        return document

    def update(
        self,
        document_id: str,
        title: Optional[str] = None,
        body: Optional[str] = None
    ) -> Optional[LocalDocument]:
        """Обновление гостевого документа, None если его нет"""
        documents = self._read()
        for index, doc in enumerate(documents):
            if doc.id != document_id:
                continue
            changes = {"updated_at": datetime.now(timezone.utc)}
            if title is not None:
                changes["title"] = title
            if body is not None:
                changes["body"] = body
            documents[index] = doc.model_copy(update=changes)
            self._write(documents)
            return documents[index]

        logger.warning(f"Local document not found: {document_id}")
        return None

    def delete(self, document_id: str) -> bool:
        return self.remove([document_id]) > 0

    def remove(self, document_ids: Iterable[str]) -> int:
        ids = set(document_ids)
        documents = self._read()
        kept = [doc for doc in documents if doc.id not in ids]
        if len(kept) != len(documents):
            self._write(kept)
        return len(documents) - len(kept)

    def clear(self) -> None:
        self._write([])

    def export_json(self) -> str:
        """Экспорт всех документов JSON массивом"""
        return json.dumps([doc.to_record() for doc in self.list()], ensure_ascii=False, indent=2)

    def import_json(self, payload: str) -> int:
        """Импорт массива документов с заменой текущего содержимого.

        Некорректные записи отбрасываются. Если массива нет или не
        осталось ни одной корректной записи, поднимается ValidationError и
        хранилище не меняется.
        """
        try:
            records = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValidationError("Import payload is not valid JSON") from exc

        if not isinstance(records, list):
            raise ValidationError("Import payload must be a JSON array")

        valid = _valid_records(records)
        if not valid:
            raise ValidationError("No valid documents found in import")

        self._write(valid)
        return len(valid)
