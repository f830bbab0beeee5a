"""Tradebook HTTP API application (FastAPI); the factory lives in `apps.api.main`."""
