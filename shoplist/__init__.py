"""Shopping list API: FastAPI handlers over interchangeable storage backends."""
