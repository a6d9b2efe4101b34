"""
SNMP protocol layer.

Architecture:
    AsyncSnmpEngine      - pysnmp async wrapper (GET only)
    SnmpSessionCache     - one serialized session per (host, community, version)
    AdaptiveQueryEngine  - bulk GET with tooBig tuning and noSuchName fallback
    decode_counter64     - Counter64 byte buffers to integers
"""
