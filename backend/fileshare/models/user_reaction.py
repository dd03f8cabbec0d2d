"""UserReaction model - the at-most-one like/dislike a user has placed on a file."""
from sqlalchemy import String, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from fileshare.models.base import Base, CreatedAtMixin, UserMixin


class UserReaction(Base, CreatedAtMixin, UserMixin):
    __tablename__ = "user_reactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    file_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("files.file_id", ondelete="CASCADE"), nullable=False, index=True
    )
    reaction: Mapped[str] = mapped_column(String(10), nullable=False)

    file = relationship("FileRecord", back_populates="reactions")

    __table_args__ = (
        UniqueConstraint("user_id", "file_id", name="uq_user_reaction"),
        CheckConstraint("reaction IN ('like', 'dislike')", name="ck_user_reactions_reaction"),
    )
