"""Authenticated principal attached to a request scope."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Principal:
    """
    The already-authenticated caller.

    Authentication itself happens outside the processing core; commands
    only see the resulting name and claims.
    """

    name: str
    claims: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("Principal name cannot be empty")
