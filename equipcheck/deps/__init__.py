"""FastAPI dependencies shared by the routers (identity, cache, guards)."""
