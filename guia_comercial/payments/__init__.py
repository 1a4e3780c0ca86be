"""
Simulated payment flow.

Responsibilities:
- Issue a checkout preference for an ad tier upgrade.
- Confirm the payment: set the tier, renew the expiration, keep a receipt.

No payment provider is contacted; confirmation is trusted as-is.
"""
