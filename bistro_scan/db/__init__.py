"""
==============================================================================
Database Package
==============================================================================

SQLAlchemy database infrastructure and ORM models.

Architecture:
------------
├── database.py   - DatabaseManager class, session factory
├── models.py     - Order, OrderItem
└── init_db.py    - DatabaseInitializer for setup and seeding

==============================================================================
"""

from .database import Base, DatabaseManager, get_database_manager, get_db
from .models import Order, OrderItem
from .init_db import DatabaseInitializer, init_db

__all__ = [
    # Database management
    "Base",
    "DatabaseManager",
    "get_database_manager",
    "get_db",
    # Models
    "Order",
    "OrderItem",
    # Initialization
    "DatabaseInitializer",
    "init_db",
]
