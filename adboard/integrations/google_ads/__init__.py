"""
Google Ads integration

Campaign and daily performance reporting for linked customers.
"""

__version__ = "2.0.0"

MODULE_NAME = 'google_ads'
