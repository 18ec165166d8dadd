from .session import DialogSession, InvalidMessageError
from .sessions import SessionRegistry

__all__ = ["DialogSession", "InvalidMessageError", "SessionRegistry"]
