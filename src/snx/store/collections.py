"""Collection names."""

ACCOUNTS = "accounts"
POINTS_TRANSACTIONS = "points_transactions"
DEMO_STATS = "demo_stats"
REFERRAL_INVITATIONS = "referral_invitations"

# Dotted paths holding numbers; stores that sort server-side compare these numerically.
NUMERIC_FIELDS = frozenset({"profile.total_points", "amount", "total_completions"})
