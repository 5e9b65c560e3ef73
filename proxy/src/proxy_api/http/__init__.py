"""HTTP helpers shared by the routers."""
