"""
Identity provider: turns a bearer credential into a verified caller identity.

Tokens are itsdangerous timed, signed payloads carrying the subject id plus
optional email and display name.
"""

from typing import Optional, Protocol

from itsdangerous import BadData, SignatureExpired, URLSafeTimedSerializer

from wagerhub.config import SecurityConfig
from wagerhub.core.exceptions import AuthError
from wagerhub.core.models import Identity


class IdentityProvider(Protocol):
    def verify(self, credential: Optional[str]) -> Identity:
        """Return the caller's identity or raise AuthError."""
        ...


class SignedTokenIdentityProvider:
    def __init__(self, secret_key: str, salt: str = "wagerhub-identity", max_age_seconds: int = 86400):
        self.serializer = URLSafeTimedSerializer(secret_key, salt=salt)
        self.max_age_seconds = max_age_seconds

    @classmethod
    def from_settings(cls, security: SecurityConfig) -> "SignedTokenIdentityProvider":
        return cls(
            security.secret_key,
            salt=security.token_salt,
            max_age_seconds=security.token_max_age_hours * 3600,
        )

    def issue(self, subject_id: str, email: Optional[str] = None, name: Optional[str] = None) -> str:
        return self.serializer.dumps({"sub": subject_id, "email": email, "name": name})

    def verify(self, credential: Optional[str]) -> Identity:
        if not credential:
            raise AuthError("No token provided")

        try:
            payload = self.serializer.loads(credential, max_age=self.max_age_seconds)
        except SignatureExpired:
            raise AuthError("Token expired")
        except BadData:
            raise AuthError("Invalid token")

        subject_id = payload.get("sub") if isinstance(payload, dict) else None
        if not isinstance(subject_id, str) or not subject_id:
            raise AuthError("Invalid token")

        return Identity(subject_id=subject_id, email=payload.get("email"), name=payload.get("name"))
