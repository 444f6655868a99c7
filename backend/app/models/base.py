from __future__ import annotations
from sqlalchemy.orm import declarative_base

# Shared metadata for every model (Alembic targets Base.metadata)
Base = declarative_base()
