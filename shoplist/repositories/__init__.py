"""
Persistence adapters.

Every backend implements the ``Storage`` contract from ``base``:
``memory_storage`` (process-local dicts), ``sql_repository`` (SQLAlchemy) and
``parse_storage`` (Parse Server / Back4App over REST). Routers and services
depend on the contract, never on a concrete backend.
"""
