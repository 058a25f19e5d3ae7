"""
Rewards App - Group leader rewards.

Append-only ledger of rewards granted when a group buy completes. A reward
is created exactly once per completed group and only moves forward through
its payout statuses (pending/approved -> paid, or cancelled).
"""
