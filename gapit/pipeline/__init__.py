"""
Value pipeline: turns raw poll output into stored values and measurements.

    expand_minions      - template groups -> one copy per device
    ScalingEngine       - scaling strategies (general / schleifenbauer)
    ResultAssembler     - OID values -> result tree
    build_measurements  - result tree -> time-series records
"""
