"""dns-promoter - Route53 delegation sync for multi-account AWS setups.

This package keeps NS delegation records and ACM DNS validation records
of subordinate accounts published in a shared root hosted zone.
"""

__version__ = "0.3.0"
__author__ = "Platform Team"
