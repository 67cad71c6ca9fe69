from loggers import get_logger
from src.core.database.repositories import BaseRepository
from src.user.models import User

logger = get_logger(__name__)


class UserRepository(BaseRepository[User]):

    model = User
