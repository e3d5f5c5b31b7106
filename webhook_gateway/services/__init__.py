"""
Services package initialization.
"""
from .payment_reconciler import PaymentReconciler, ReconcileOutcome

__all__ = ["PaymentReconciler", "ReconcileOutcome"]
