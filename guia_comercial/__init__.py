"""Local-commerce directory service."""
