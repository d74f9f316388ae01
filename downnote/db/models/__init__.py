from downnote.db.models.document import Document, DocumentSnapshot

__all__ = [
    "Document",
    "DocumentSnapshot"
]
