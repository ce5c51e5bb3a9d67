"""Identity infrastructure layer: cookie sign-in and principal dependencies."""
