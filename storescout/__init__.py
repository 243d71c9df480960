"""Store Scout: crawl a store's site, extract its pages and analyse them into one record."""

__version__ = "0.1.0"
