"""Key-value projection of a package registry."""
