from .database import SQLiteMemoryDB
from .memory_policy_guard import MemoryPolicyError, MemoryPolicyGuard, RecordNotFoundError, RecordScopeError
from .service import WELCOME_MESSAGE, MemoryService

__all__ = [
    "SQLiteMemoryDB",
    "MemoryService",
    "MemoryPolicyGuard",
    "MemoryPolicyError",
    "RecordNotFoundError",
    "RecordScopeError",
    "WELCOME_MESSAGE",
]
