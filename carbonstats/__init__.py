"""Client and command for reporting document and call-minute costs from a Carbon Billing server."""

__version__ = "0.1.0"