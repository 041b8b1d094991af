"""Domain Layer: value objects, the error taxonomy and the ports (interfaces)
that the core services depend on.
"""
