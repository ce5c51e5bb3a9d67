"""
Application layer.

The application layer turns data operations into commands and runs them
inside a unit of work.

This layer contains:
- Commands: Immutable descriptions of reads and saves
- Results: Success and Failure outcomes of each command
- Unit of Work: The transactional scope commands execute in
- Processing Engine: Sequential, fail-fast command dispatch
- Ports: Interfaces the infrastructure layer implements
"""
