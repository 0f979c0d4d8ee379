"""FastAPI surface of the dashboard (routers under ``/api``)."""
