"""SQLModel table definitions for the embedding store.

Schema is additive-only: new optional columns may be added without
migrating existing rows. ``model`` records which model produced a vector.
"""

from sqlalchemy import Column, LargeBinary
from sqlmodel import Field, SQLModel


class EmbeddingRow(SQLModel, table=True):
    """One embedding per path (path is the primary key)."""

    __tablename__ = "embeddings"

    path: str = Field(primary_key=True)
    embedding: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    dim: int
    model: str = Field(index=True)
    created_at: int  # epoch millis
