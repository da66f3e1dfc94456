"""
adboard - marketing dashboard backend

OAuth token lifecycle for Google Search Console, Google Ads and Meta,
provider data fetching, and website form lead ingestion.
"""

__version__ = "2.0.0"
