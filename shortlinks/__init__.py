"""shortlinks: URL shortener with metadata, expiry and cache-aside lookups."""

__version__ = "1.0.0"
