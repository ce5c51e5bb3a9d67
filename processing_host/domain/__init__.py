"""
Domain layer.

The domain layer holds the concepts every other layer speaks in.
It has no dependencies on external frameworks or infrastructure.

This layer contains:
- Error kinds and the exception hierarchy that carries them
- The authenticated principal
"""
