"""
Session token verification for the Auth service.
"""
