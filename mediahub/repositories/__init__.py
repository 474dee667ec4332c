"""
Repositories package — data-access layer.

Each repository file handles all DB operations for one domain entity.
Repositories do NOT handle business logic beyond basic data integrity.

Convention:
    - One file per aggregate root (e.g., media.py)
    - All functions accept `AsyncSession` as the first argument
    - Use `flush()` internally; the transaction is owned by the caller
"""
