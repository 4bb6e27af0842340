"""Lee-Ready trade direction classification."""

__version__ = "0.1.0"
