# ============================================================================
# backend/casetrack/db/__init__.py

"""
Database Module

Contains SQLAlchemy models, Pydantic schemas, and database configuration.
"""

from casetrack.db.database import Base, engine, SessionLocal, get_db
from casetrack.db import models, schemas

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'get_db',
    'models',
    'schemas'
]
