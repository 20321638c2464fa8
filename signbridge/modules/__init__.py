"""Pipeline stages and I/O collaborators."""
