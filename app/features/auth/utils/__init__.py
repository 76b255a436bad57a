from app.features.auth.utils.security import hash_password

__all__ = ["hash_password"]
