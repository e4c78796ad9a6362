"""
High-level use cases for the shoplist API.

Service modules orchestrate the storage contract to implement business rules
(sign up, log in, session lifecycle). Routers call these services instead of
handling credentials or session tokens directly.
"""
