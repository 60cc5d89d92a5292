from sessionguard.models.user import User

__all__ = ["User"]
