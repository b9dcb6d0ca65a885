"""HTTP surface (install the ``api`` extra)."""
