"""
Website form integration

Connected forms post submissions to the public webhook; each submission is
mapped onto the lead columns and stored for the form's owner.
"""

__version__ = "2.0.0"

MODULE_NAME = 'forms'
