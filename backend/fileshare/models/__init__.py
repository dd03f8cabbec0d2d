"""Import all models so SQLAlchemy metadata knows about them."""
from fileshare.models.base import Base
from fileshare.models.file_record import FileRecord
from fileshare.models.user_reaction import UserReaction

__all__ = ["Base", "FileRecord", "UserReaction"]
