"""Find build artifact directories in a tree and clean them."""

__version__ = "0.1.0"
