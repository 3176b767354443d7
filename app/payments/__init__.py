"""
Payments app for escrow and wallet money movement.

This app handles:
- The ledger (payments.ledger): accounts, immutable entries, balanced postings
- Escrow (payments.escrow): project payments, fulfiller releases, refunds
- Wallets (payments.wallets): lazily created client/fulfiller wallets, top-ups
- Withdrawals (payments.withdrawals): holds and payouts
- Integrity checks (payments.tasks): periodic replay of every account

Related apps:
    - projects: the workflow engine calls EscrowService inside its transitions

Usage:
    from payments.escrow import EscrowService
    from payments.withdrawals import WithdrawalService

    EscrowService.receive_payment(project, 50000, "pay-1", wallet.id, actor_id=client_id)
    WithdrawalService.request(wallet.id, 80000, actor_id=owner_id)
"""
