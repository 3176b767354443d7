"""
State machine enums for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    SettlementKind,
    WithdrawalOutcome,
    WithdrawalState,
)

__all__ = [
    "SettlementKind",
    "WithdrawalOutcome",
    "WithdrawalState",
]
