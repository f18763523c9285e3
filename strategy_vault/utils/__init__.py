"""
Utility functions module.

Time Semantics:
- All instants are timezone-aware UTC datetimes
- Task ids carry their submission instant as epoch milliseconds
- Wall-clock access goes through ``utc_now`` so callers can inject a clock

Address Semantics:
- Wallet addresses are compared case-insensitively; ``normalize_address``
  is the single place that folds them
"""
