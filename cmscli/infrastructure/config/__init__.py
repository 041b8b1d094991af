"""Configuration loading and runtime context resolution."""
