"""FastAPI routes and dependencies."""
