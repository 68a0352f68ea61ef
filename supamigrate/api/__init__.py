"""HTTP API for running and previewing migrations."""
