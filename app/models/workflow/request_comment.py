from sqlalchemy import Column, Integer, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class RequestComment(BaseModel):
    __tablename__ = 'request_comments'

    document_id = Column(Integer, ForeignKey('request_documents.id', ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    text = Column(Text, nullable=False)
    is_edited = Column(Boolean, default=False)
    # is_deleted (from BaseModel) is the soft-delete flag; rows are never removed

    # Relationships
    document = relationship("RequestDocument", back_populates="comments")
