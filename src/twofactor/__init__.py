"""Two-factor authentication add-on: TOTP enrollment and login challenges."""

__version__ = "0.1.0"
