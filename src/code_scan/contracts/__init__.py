"""JSON schema contracts bundled with the package."""
