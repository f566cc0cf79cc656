#taskgraph/models/base.py
"""
Базовый класс для ORM-моделей снимков.

Использовать как Base при описании моделей:
    from taskgraph.models.base import Base
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
