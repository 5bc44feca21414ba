"""
Модуль: `models/__init__.py`.
Назначение: Импорт моделей для корректной регистрации в SQLAlchemy metadata.
"""

from .identity import AuthIdentity
from .auth_token import AuthToken
from .user import User
from .category import Category
from .theme import Theme
from .artwork import Artwork
from .like import Like
from .comment import Comment
from .contact import Contact

__all__ = [
    "AuthIdentity",
    "AuthToken",
    "User",
    "Category",
    "Theme",
    "Artwork",
    "Like",
    "Comment",
    "Contact",
]
