"""
Journal bounded context: tradebooks, trades and exit legs stored under tenant-scoped
transactions with encrypted sensitive columns.
"""
