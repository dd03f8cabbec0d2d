"""FileRecord model - uploaded file metadata, payload and counters."""
from datetime import datetime
from sqlalchemy import String, Text, BigInteger, Integer, DateTime, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fileshare.models.base import Base


class FileRecord(Base):
    __tablename__ = "files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    text_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    caption: Mapped[str] = mapped_column(Text, default="")
    upload_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dislikes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    uploader_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Reactions go with the file
    reactions = relationship(
        "UserReaction", back_populates="file",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("views >= 0", name="ck_files_views_non_negative"),
        CheckConstraint("likes >= 0", name="ck_files_likes_non_negative"),
        CheckConstraint("dislikes >= 0", name="ck_files_dislikes_non_negative"),
    )
