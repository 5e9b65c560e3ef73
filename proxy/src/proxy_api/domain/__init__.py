"""Domain records shared by the repositories and services."""
