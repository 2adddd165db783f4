"""JukenMap: school search map backend (geocoding, filtering, transit times)."""

__version__ = "0.1.0"
