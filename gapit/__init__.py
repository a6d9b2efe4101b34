"""Gapit SNMP poller - group/member based SNMP polling for time-series storage."""
