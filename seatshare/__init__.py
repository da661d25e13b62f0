"""seatshare: shared subscription seats pooled per provider and country."""

__version__ = "0.1.0"
