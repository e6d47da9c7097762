"""
Persistence for users, permissions and permission grants.
"""
