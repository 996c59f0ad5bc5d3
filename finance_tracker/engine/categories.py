"""Category names and labels shared by the engine and validation."""

from types import MappingProxyType

from finance_tracker.models.records import BillFrequency


# Synthetic buckets used by the spending breakdown
SUBSCRIPTIONS_CATEGORY = "Subscriptions"
LENDING_CATEGORY = "Lending"

EXPENSE_CATEGORIES = (
    "Food",
    "Transport",
    "Shopping",
    "Bills",
    "Entertainment",
    "Health",
    "Other",
)

SUBSCRIPTION_CATEGORIES = (
    "Netflix",
    "Spotify",
    "Gym",
    "Rent",
    "Insurance",
    "Utilities",
    "Other",
)

BILL_CATEGORIES = (
    "Utilities",
    "Housing",
    "Insurance",
    "Telecom",
    "Subscriptions",
    "Other",
)

INCOME_SOURCES = (
    "Freelance",
    "Side Job",
    "Gift",
    "Rental",
    "Refund",
    "Investment",
    "Bonus",
    "Other",
)

FREQUENCY_LABELS = MappingProxyType({
    BillFrequency.MONTHLY: "Monthly",
    BillFrequency.BIMONTHLY: "Every 2 months",
    BillFrequency.QUARTERLY: "Quarterly",
    BillFrequency.YEARLY: "Yearly",
})
