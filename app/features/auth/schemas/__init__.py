from app.features.auth.schemas.auth import SignupRequest, SignupResponse, UserResponse

__all__ = ["SignupRequest", "SignupResponse", "UserResponse"]
