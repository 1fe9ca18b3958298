"""Authentication and authorization.

Learn: Users register with email/password (bcrypt-hashed) and log in
to receive a signed JWT. Every protected request carries that JWT as
a Bearer token; it resolves to a "current identity" that scopes all
session queries to the caller.
"""
