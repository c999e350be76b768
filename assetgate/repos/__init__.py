from .base import BaseRepository
from .user import UserRepo
from .license import LicenseRepo
from .invite import InviteRepo
from .catalog import CatalogSource, get_source

__all__ = [
    "BaseRepository",
    "UserRepo",
    "LicenseRepo",
    "InviteRepo",
    "CatalogSource",
    "get_source",
]
