"""Subordinate account discovery.

Accounts come either from the organization (tagged with an environment
label) or from a static list of roles.
"""
