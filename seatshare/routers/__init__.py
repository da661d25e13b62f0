"""
FastAPI routers grouped by audience (seat holders, admin).

Each module exposes an APIRouter included by app.py. Routers read the
service container from ``request.app.state`` and never open sessions.
"""
