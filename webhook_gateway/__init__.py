"""Storefront callback gateway.

Receives callbacks from Midtrans, MileApp and Shoptree and forwards them to
the internal order, task and inventory services.
"""

__all__: list[str] = []
