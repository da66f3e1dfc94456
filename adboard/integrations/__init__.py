"""Provider integrations"""
