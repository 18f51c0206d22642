# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Storefront customer / admin profile.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Role:
      - "user" | "admin"
      - anonymous visitors have no row and no token.

    Passwords live in Supabase Auth; this table only mirrors identity,
    display name, application role and whether the account may shop.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(
        max_length=50,
        description="Display name; first part of email by default",
    )

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    is_active: bool = Field(
        default=True,
        description="Deactivated accounts are rejected at authentication",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
