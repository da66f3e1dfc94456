"""
Google Search Console integration

Keyword and page performance plus index coverage for a connected property.
"""

__version__ = "2.0.0"

MODULE_NAME = 'search_console'
