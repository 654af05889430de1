"""Kdump helpers: kernel image inspection, kernel configs, capture kernel lookup and multipath.conf editing."""

__version__ = "0.1.0"