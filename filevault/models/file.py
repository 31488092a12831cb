# filevault/models/file.py
import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from filevault.models.database import Base


class FileRecord(Base):
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    path = Column(String(255), nullable=False)                          # <user_id>/<system_name>, relative to the users root
    system_name = Column(String(64), unique=True, index=True, nullable=False)  # Name we store on disk
    original_name = Column(Text, nullable=False)                        # Name user uploaded
    size_bytes = Column(BigInteger, nullable=False)
    mime = Column(String(255), nullable=False)
    extension = Column(String(255), nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow)

    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # Many files → one owner (User)
    owner = relationship("User", back_populates="files")

    def public_dict(self) -> dict:
        """Metadata safe to hand to clients; the storage path stays internal."""
        return {
            "systemName": self.system_name,
            "originalName": self.original_name,
            "sizeBytes": self.size_bytes,
            "mime": self.mime,
            "extension": self.extension,
            "userId": self.user_id,
        }
