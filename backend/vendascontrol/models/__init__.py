from .documents import Document
from .auth import User, SessionToken

__all__ = [
    'Document',
    'User', 'SessionToken',
]
