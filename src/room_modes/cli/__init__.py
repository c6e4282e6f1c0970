"""Command-line interface: the ``room-modes`` tool."""
