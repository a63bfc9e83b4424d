"""Well-known account ids."""

# The ledger's own custody account — batch costs land here, payouts leave from here.
HOUSE_ACCOUNT_ID = "zillopoly-house"
