"""
User Model Module

This module defines the User model and UserRole enumeration for authentication
and authorization throughout the application.
"""
from enum import Enum
from typing import List, Optional
from sqlmodel import SQLModel, Field, JSON, Column
import uuid
from datetime import datetime, timezone


class UserRole(str, Enum):
    """
    Enumeration of user roles defining permission levels in the system.

    - OWNER: Read-only access to projects and dashboards
    - CONTROLLER: Creates, imports and updates projects within their division
    - ADMIN: Full access, including user management

    Permission checks throughout the API use these roles to control access to
    resources and operations.
    """
    OWNER = "owner"
    CONTROLLER = "controller"
    ADMIN = "admin"


class User(SQLModel, table=True):
    """
    User model representing authenticated users in the system.

    Users are identified by UUID and authenticated via email/password. The roles
    field determines their permission level; the division decides which
    workflow stages a controller may touch.

    Attributes:
        id: Unique identifier (UUID) automatically generated for each user
        email: User's email address, used for authentication (required, unique, indexed)
        password: Hashed password (bcrypt) for authentication
        full_name: User's full display name
        roles: List of UserRole values assigned to this user (default: [OWNER])
        division: "PLANNING", "DEPLOYMENT", "ADMIN" or None
        position: Free-text job title
        is_active: Inactive users cannot log in
        last_login: ISO timestamp of the last successful login
        created_at: ISO timestamp when the user account was created
    """
    __tablename__ = "users"

    # Primary key - auto-generated UUID for global uniqueness
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)

    # Authentication fields
    email: str = Field(unique=True, index=True, nullable=False)
    password: Optional[str] = None  # Hashed password (bcrypt)

    # Profile information
    full_name: Optional[str] = None
    division: Optional[str] = None
    position: Optional[str] = None

    # Authorization - stored as JSON array in database
    roles: List[UserRole] = Field(default=[UserRole.OWNER], sa_column=Column(JSON))

    # Account state
    is_active: bool = True
    last_login: Optional[str] = None

    # Audit timestamp
    created_at: Optional[str] = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def is_privileged(self) -> bool:
        """Helper to check if user has admin-level roles."""
        return UserRole.ADMIN in self.roles

    @property
    def is_controller(self) -> bool:
        return UserRole.CONTROLLER in self.roles and not self.is_privileged
