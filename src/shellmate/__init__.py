"""shellmate - plain-language requests in, shell commands out."""

__version__ = "0.1.0"
