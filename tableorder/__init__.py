"""QR table ordering: order lifecycle and live kitchen/waiter fan-out for Django."""

__version__ = '1.0.0'
