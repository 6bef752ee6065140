"""Repository for User entity."""

from src.app.models import User
from src.app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for users. Lookups by primary key come from BaseRepository."""

    model = User
