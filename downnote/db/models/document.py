from sqlalchemy import Column, String, Text, Integer, ForeignKey, UUID, Index
from sqlalchemy.orm import relationship

from downnote.db.base import BaseModel


class Document(BaseModel):
    __tablename__ = "documents"
    
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False, default="")
    version = Column(Integer, nullable=False, default=1)
    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    
    # Relationships
    snapshots = relationship(
        "DocumentSnapshot",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True
    )


class DocumentSnapshot(BaseModel):
    __tablename__ = "document_snapshots"
    
    document_id = Column(
        UUID(as_uuid=True),
        ForeignKey("documents.uuid", ondelete="CASCADE"),
        nullable=False
    )
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    char_count = Column(Integer, nullable=False)
    word_count = Column(Integer, nullable=False)
    # Порядковый номер внутри документа, разрешает совпадения created_at
    sequence = Column(Integer, nullable=False)
    
    # Relationships
    document = relationship("Document", back_populates="snapshots")
    
    __table_args__ = (
        Index("ix_document_snapshots_document_order", "document_id", "created_at", "sequence"),
    )
