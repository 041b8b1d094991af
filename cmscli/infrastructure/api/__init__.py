"""Content API adapters: the real HTTP client and the file-backed store."""
