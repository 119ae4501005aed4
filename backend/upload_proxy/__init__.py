"""Image upload proxy for the email builder."""

__version__ = "0.1.0"
