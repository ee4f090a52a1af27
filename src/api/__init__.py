"""HTTP surface for the short links service."""
