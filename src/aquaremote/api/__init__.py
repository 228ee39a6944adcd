"""HTTP presentation API for the tank connectivity core."""
