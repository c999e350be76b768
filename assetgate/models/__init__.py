from .base import Base
from .user import User
from .license import License, LicenseTransaction
from .invite import Invite
from .catalog import (
    CategoryComponent,
    CategoryDesign,
    CategoryGradient,
    CategoryTemplate,
    ContentComponent,
    ContentDesign,
    ContentGradient,
    ContentTemplate,
)

__all__ = [
    "Base",
    "User",
    "License",
    "LicenseTransaction",
    "Invite",
    "CategoryComponent",
    "CategoryDesign",
    "CategoryGradient",
    "CategoryTemplate",
    "ContentComponent",
    "ContentDesign",
    "ContentGradient",
    "ContentTemplate",
]
