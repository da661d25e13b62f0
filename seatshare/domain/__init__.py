"""Pure domain rules (no database or FastAPI imports)."""
