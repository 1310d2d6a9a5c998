from app.client.session import AuthSession, SessionError

__all__ = ["AuthSession", "SessionError"]
