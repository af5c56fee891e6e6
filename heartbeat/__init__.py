"""
Heartbeat billing core.

Subscription entitlements for Heartbeat uptime monitoring:
- Tier catalog and access policy
- Stripe webhook reconciliation into the canonical subscription record
- Per-tier monitor quota enforcement
"""
