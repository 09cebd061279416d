"""Cart Scraper — recovers cart contents from SHEIN cart-share pages."""

__version__ = "0.1.0"
