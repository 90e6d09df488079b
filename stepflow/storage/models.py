"""SQLAlchemy database models for stored workflows, modules and runs."""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, JSON, Float, ForeignKey
from sqlalchemy.orm import relationship
from .database import Base


class WorkflowModel(Base):
    """Database model for workflows."""
    __tablename__ = "workflows"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text)
    steps = Column(JSON, nullable=False)  # Wire form of the step list
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    executions = relationship(
        "ExecutionModel", back_populates="workflow", cascade="all, delete-orphan"
    )


class ModuleModel(Base):
    """Database model for the module catalogue."""
    __tablename__ = "modules"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    descriptor = Column(JSON, nullable=False)  # Wire form of the ModuleDescriptor
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ExecutionModel(Base):
    """Database model for parallel execution runs."""
    __tablename__ = "executions"

    id = Column(String, primary_key=True)
    workflow_id = Column(String, ForeignKey("workflows.id"), nullable=True)
    status = Column(String, nullable=False)  # running, completed, partial, failed, cancelled
    results = Column(JSON)
    stats = Column(JSON)
    parallelism = Column(JSON)
    duration_ms = Column(Float)
    error_message = Column(Text)
    started_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)

    workflow = relationship("WorkflowModel", back_populates="executions")
