"""Analysis of object-storage benchmark operation logs."""

__version__ = "0.1.0"