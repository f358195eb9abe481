from .service import Photo, UserRegistration, UserService, serialize_user

__all__ = ["Photo", "UserRegistration", "UserService", "serialize_user"]
