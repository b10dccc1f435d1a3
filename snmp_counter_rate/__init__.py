"""
SNMP Counter Rate Check.

Monitoring probe that reports the per-second rate of an SNMP counter.
"""

__version__ = "1.0.0"
