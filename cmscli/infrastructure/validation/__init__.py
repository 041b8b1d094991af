"""Input validation: bulk operation files and payload prechecks."""
