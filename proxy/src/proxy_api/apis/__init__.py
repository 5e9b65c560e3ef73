"""HTTP routers for the proxy API."""
