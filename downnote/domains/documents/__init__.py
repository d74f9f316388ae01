from downnote.domains.documents.entities import Document, Snapshot
from downnote.domains.documents.schemas import (
    DocumentCreate, DocumentUpdate, DocumentResponse, DocumentListResponse,
    VersionSummaryResponse, VersionResponse, VersionListResponse,
    GuestMigrationRequest, GuestMigrationResponse
)

__all__ = [
    "Document", "Snapshot",
    "DocumentCreate", "DocumentUpdate", "DocumentResponse", "DocumentListResponse",
    "VersionSummaryResponse", "VersionResponse", "VersionListResponse",
    "GuestMigrationRequest", "GuestMigrationResponse"
]
