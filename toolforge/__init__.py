"""toolforge — scaffold, wire and register new tool modules."""

__version__ = "0.1.0"
