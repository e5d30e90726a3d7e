"""Parse and download US sanctions lists, store watches and call their webhooks."""

__version__ = "0.17.1"

__all__ = [
    "csl",
    "database",
    "download",
    "dpl",
    "ofac",
    "sources",
    "values",
    "watch",
    "webhook",
    "webhook_receiver",
]