"""Module-level repository functions, one module per aggregate."""
