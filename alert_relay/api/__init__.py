"""HTTP routers for the citizen and domain sides."""
