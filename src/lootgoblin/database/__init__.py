"""
Database package for LootGoblin.

Public API:
    - database: Global Database instance
    - get_db: Get the global Database instance
    - db_connection: Shared ConnectionManager
    - StorageError: Raised when a persistence operation fails
"""
