"""Assemble macOS application bundles into distributable disk images."""

__version__ = "0.1.0"
