"""A model of a small teaching Unix kernel: paging, processes, system calls, and user-space utilities."""

__version__ = "0.1.0"