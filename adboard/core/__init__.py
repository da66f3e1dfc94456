"""
Core building blocks shared by every integration: configuration-aware
database access, token encryption, session authentication, outbound HTTP,
logging and health checks.
"""
