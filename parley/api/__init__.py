"""HTTP surface of the Parley server."""
