"""segcut: lossless segment export with smart cut."""

__version__ = "0.1.0"
