"""TaskBlast -- focus timer and gentle notification scheduling."""

__version__ = "0.1.0"
