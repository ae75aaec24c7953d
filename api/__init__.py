"""api/ -- FastAPI application, transport models, and HTTP routes."""
