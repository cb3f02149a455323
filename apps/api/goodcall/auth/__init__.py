from goodcall.auth.api import router
from goodcall.auth.service import AuthService, auth_service

__all__ = ["router", "AuthService", "auth_service"]
