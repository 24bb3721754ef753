"""LinkSaver: save, categorize and preview social-media links."""

__version__ = "0.1.0"
