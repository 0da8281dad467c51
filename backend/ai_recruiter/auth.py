# backend/ai_recruiter/auth.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AuthStatus(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    SIGNED_OUT = "signed_out"


class AuthError(Exception):
    pass


@dataclass
class AuthSession:
    """
    The recruiter identity for one request, resolved once at the API boundary.

    Lifecycle: unauthenticated -> authenticated -> signed_out. Signed-out is
    terminal; a new sign-in needs a new AuthSession.
    """
    status: AuthStatus = AuthStatus.UNAUTHENTICATED
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None

    @classmethod
    def from_identity(cls, email: Optional[str], name: Optional[str] = None,
                      picture: Optional[str] = None) -> "AuthSession":
        session = cls()
        if email and email.strip():
            session.sign_in(email, name, picture)
        return session

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED

    def sign_in(self, email: str, name: Optional[str] = None, picture: Optional[str] = None) -> None:
        if self.status is not AuthStatus.UNAUTHENTICATED:
            raise AuthError(f"cannot sign in from {self.status.value}")
        self.email = email.strip().lower()
        self.name = name
        self.picture = picture
        self.status = AuthStatus.AUTHENTICATED

    def sign_out(self) -> None:
        if self.status is AuthStatus.AUTHENTICATED:
            self.status = AuthStatus.SIGNED_OUT
            self.email = self.name = self.picture = None

    def require_email(self) -> str:
        if not self.is_authenticated:
            raise AuthError("not signed in")
        return self.email
