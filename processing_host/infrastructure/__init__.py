"""
Infrastructure layer.

The infrastructure layer contains implementations of ports defined
in the application layer. It handles all external concerns:

- Persistence (SQLAlchemy unit of work and data sources)
- Web framework (FastAPI routers, request-scoped dependencies)
- Cookie sign-in

This layer depends on domain and application layers,
but they do not depend on it.
"""
