from .database import AccountStore, Database, SessionStore, TransactionStore, UserStore, get_db

__all__ = ["AccountStore", "Database", "SessionStore", "TransactionStore", "UserStore", "get_db"]
