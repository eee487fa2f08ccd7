"""Shared data layer (database, models, repositories, migrations)."""
