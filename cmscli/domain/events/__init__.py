"""Domain Event definitions.

Represents significant occurrences during request execution and bulk runs
that the diagnostics layer can react to.
"""
