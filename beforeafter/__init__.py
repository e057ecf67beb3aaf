"""Before/After — daily release-date comparison game, session engine."""

__version__ = "0.1.0"
