"""Core components for dns-promoter.

This module contains the foundational components including AWS client
management, credential brokering, configuration handling, logging setup
and the error taxonomy shared by the reconciler.
"""
