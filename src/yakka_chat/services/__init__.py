"""Service layer for the Yakka chat core."""
