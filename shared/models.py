"""
Data models for the Git LoC tracker.

This module provides:
- RepoStats, the in-memory per-repository snapshot
- LocChange, the append-only change record
- The SQLAlchemy table backing the persistence sink
- Conversion and validation helpers between the two layers
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator, computed_field
from sqlalchemy import Column, String, Integer, Boolean, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# Pydantic Models
class RepoStats(BaseModel):
    """Latest line-count snapshot for one repository.

    Every field is recomputed from scratch each reconciliation cycle.
    """

    committed_additions: int = Field(default=0, ge=0, description="Lines added by today's commits")
    committed_deletions: int = Field(default=0, ge=0, description="Lines deleted by today's commits")
    pending_additions: int = Field(default=0, ge=0, description="Lines added in the working tree")
    pending_deletions: int = Field(default=0, ge=0, description="Lines deleted in the working tree")

    model_config = {"frozen": True}

    @computed_field
    @property
    def committed_loc(self) -> int:
        return self.committed_additions + self.committed_deletions

    @computed_field
    @property
    def pending_loc(self) -> int:
        return self.pending_additions + self.pending_deletions

    @computed_field
    @property
    def total_additions(self) -> int:
        return self.committed_additions + self.pending_additions

    @computed_field
    @property
    def total_deletions(self) -> int:
        return self.committed_deletions + self.pending_deletions


class LocChangeBase(BaseModel):
    """Base change record with common fields."""

    repo_name: str = Field(..., min_length=1, description="Repository name")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Emission time (UTC)"
    )
    author: Optional[str] = Field(None, description="Tracked author")
    additions: int = Field(default=0, ge=0, description="Committed plus pending additions")
    deletions: int = Field(default=0, ge=0, description="Committed plus pending deletions")
    is_committed: bool = Field(default=False, description="Pass-through flag, always recorded false")

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v):
        """Normalize the timestamp to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @classmethod
    def from_stats(
        cls,
        repo_name: str,
        stats: RepoStats,
        author: Optional[str],
        timestamp: Optional[datetime] = None,
    ) -> "LocChangeBase":
        """Build the record emitted for a repository after a cycle."""
        data: Dict[str, Any] = {
            "repo_name": repo_name,
            "author": author,
            "additions": stats.total_additions,
            "deletions": stats.total_deletions,
            "is_committed": False,
        }
        if timestamp is not None:
            data["timestamp"] = timestamp
        return cls(**data)


class LocChangeCreate(LocChangeBase):
    """Model for creating a new change record."""
    pass


class LocChange(LocChangeBase):
    """Stored change record, including its database id."""

    id: Optional[int] = Field(None, description="Auto-incrementing row id")

    model_config = {"from_attributes": True}


# SQLAlchemy Models for Database
class LocChangeModel(Base):
    """SQLAlchemy model for change records."""

    __tablename__ = "loc_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    repo_name = Column(String, nullable=False)
    timestamp = Column(String, nullable=False)
    author = Column(String, nullable=True)
    additions = Column(Integer, nullable=False)
    deletions = Column(Integer, nullable=False)
    is_committed = Column(Boolean, nullable=False)

    __table_args__ = (
        Index('idx_loc_changes_repo_timestamp', 'repo_name', 'timestamp'),
    )


# Model conversion utilities
class ModelConverter:
    """Utility class for converting between Pydantic and SQLAlchemy models."""

    @staticmethod
    def change_to_model(change: LocChangeBase) -> LocChangeModel:
        """Convert a Pydantic change record to a LocChangeModel row."""
        return LocChangeModel(
            repo_name=change.repo_name,
            timestamp=change.timestamp.isoformat(),
            author=change.author,
            additions=change.additions,
            deletions=change.deletions,
            is_committed=change.is_committed,
        )

    @staticmethod
    def model_to_change(model: LocChangeModel) -> LocChange:
        """Convert a LocChangeModel row to a Pydantic LocChange."""
        return LocChange(
            id=model.id,
            repo_name=model.repo_name,
            timestamp=datetime.fromisoformat(model.timestamp),
            author=model.author,
            additions=model.additions,
            deletions=model.deletions,
            is_committed=model.is_committed,
        )


# Model validation utilities
class ModelValidator:
    """Utility class for model validation."""

    @staticmethod
    def validate_change_data(data: Dict[str, Any]) -> List[str]:
        """Validate change record data and return list of errors."""
        errors = []

        for field in ['repo_name', 'timestamp']:
            if field not in data or not data[field]:
                errors.append(f"Missing required field: {field}")

        for field in ['additions', 'deletions']:
            if field not in data or data[field] is None:
                errors.append(f"Missing required field: {field}")
            elif data[field] < 0:
                errors.append(f"{field} cannot be negative")

        if 'is_committed' not in data or not isinstance(data['is_committed'], bool):
            errors.append("is_committed must be a boolean")

        return errors


# Export commonly used classes and functions
__all__ = [
    'RepoStats',
    'LocChangeBase', 'LocChangeCreate', 'LocChange',
    'LocChangeModel', 'Base',
    'ModelConverter', 'ModelValidator'
]
