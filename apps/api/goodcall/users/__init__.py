from goodcall.users.api import router
from goodcall.users.models import User
from goodcall.users.schemas import UserCreate, UserRead, UserSummary, UserUpdate
from goodcall.users.service import UserService, user_service

__all__ = [
    "router",
    "User",
    "UserCreate",
    "UserRead",
    "UserSummary",
    "UserUpdate",
    "UserService",
    "user_service",
]
