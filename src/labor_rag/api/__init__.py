"""HTTP routers for the labor-law assistant."""
