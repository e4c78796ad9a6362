"""
FastAPI routers grouped by domain (auth, lists).

Each module exposes an APIRouter included by ``shoplist.app.create_app``.
Routers translate storage absence and ownership mismatches into status codes;
the storage layer itself knows nothing about ownership.
"""
