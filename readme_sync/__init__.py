"""readme-sync: keeps a repository README in sync through pull requests."""

__version__ = "0.1.0"
