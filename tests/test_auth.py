import pytest

from ai_recruiter.auth import AuthError, AuthSession, AuthStatus


def test_from_identity_signs_in_and_normalizes_email():
    session = AuthSession.from_identity("  Rita@Example.COM ", "Rita")
    assert session.is_authenticated
    assert session.require_email() == "rita@example.com"


@pytest.mark.parametrize("email", [None, "", "   "])
def test_from_identity_without_email_is_unauthenticated(email):
    session = AuthSession.from_identity(email)
    assert session.status is AuthStatus.UNAUTHENTICATED
    with pytest.raises(AuthError):
        session.require_email()


def test_sign_out_is_terminal():
    session = AuthSession.from_identity("r@example.com")
    session.sign_out()
    assert session.status is AuthStatus.SIGNED_OUT
    assert session.email is None
    with pytest.raises(AuthError):
        session.sign_in("r@example.com")


def test_double_sign_in_rejected():
    session = AuthSession.from_identity("r@example.com")
    with pytest.raises(AuthError):
        session.sign_in("other@example.com")
