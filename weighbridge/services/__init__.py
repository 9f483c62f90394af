"""Receipt printing services."""
