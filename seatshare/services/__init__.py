"""
High-level use cases for the seatshare API.

Each service module orchestrates repositories to implement business rules
(claim a seat, queue a request, register an account, etc.).

Routers (FastAPI endpoints) call these services instead of touching the
database sessions directly.
"""
