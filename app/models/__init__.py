from .user import User, UserRole
from .project import Project
from .project_log import ProjectLog

__all__ = [
    "User", "UserRole",
    "Project",
    "ProjectLog",
]
