"""stagix: static HTML sites for git repositories."""

__version__ = "0.1.0"
