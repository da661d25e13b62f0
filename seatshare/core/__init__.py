"""
Core utilities shared across the seatshare backend.

This package hosts:
- configuration helpers (env vars, feature flags)
- cross-cutting services such as logging and password hashing
- the error taxonomy raised by services and mapped by routers

Services and repositories depend on these primitives instead of reading
os.environ or configuring loggers themselves.
"""
