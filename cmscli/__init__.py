"""cmscli: command-line client for a hosted headless CMS content API.

The package is layered the same way throughout: ``domain`` holds value
objects, errors and ports, ``core`` holds the use-case services, and
``infrastructure`` holds the adapters (HTTP, files, console, config).
"""

__version__ = "0.3.0"

# Schema version of the JSON output envelopes
OUTPUT_VERSION = "0.x"
