"""
Core utilities shared across the shoplist API.

This package hosts configuration helpers (env vars, backend selection),
logging setup and password hashing. Routers, services and repositories
depend on these primitives instead of reading os.environ directly.
"""
