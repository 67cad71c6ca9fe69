"""
Central import point for every ORM model so that Base.metadata is complete
for Alembic autogenerate and for mapper configuration.
"""

from src.user.auth.models import RefreshToken as RefreshToken
from src.user.models import User as User
