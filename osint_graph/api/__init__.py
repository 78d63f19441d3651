"""HTTP layer: FastAPI app factory, routers and error mapping."""
