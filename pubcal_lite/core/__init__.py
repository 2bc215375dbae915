"""Shared infrastructure for pubcal_lite: configuration, caching, timezones and errors."""
