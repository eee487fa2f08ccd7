"""FastAPI service: OAuth callbacks, token lifecycle and the v1 API."""
