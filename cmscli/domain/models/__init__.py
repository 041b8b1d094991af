"""Domain models: requests, responses, errors, pages and bulk operations."""
