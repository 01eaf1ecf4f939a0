"""Logical source tables and the columns each report relies on."""

ACCOUNTS = "accounts"
SUBSCRIPTIONS = "subscriptions"
CHURN_EVENTS = "churn_events"
FEATURE_USAGE = "feature_usage"
SUPPORT_TICKETS = "support_tickets"

TABLE_NAMES = [ACCOUNTS, SUBSCRIPTIONS, CHURN_EVENTS, FEATURE_USAGE, SUPPORT_TICKETS]

REQUIRED_COLUMNS = {
    ACCOUNTS: ["account_id", "industry", "plan_tier", "signup_date"],
    SUBSCRIPTIONS: ["subscription_id", "account_id", "mrr_amount"],
    CHURN_EVENTS: ["account_id", "churn_date", "reason_code", "refund_amount_usd"],
    FEATURE_USAGE: ["subscription_id", "feature_name", "usage_date", "usage_count"],
    SUPPORT_TICKETS: ["ticket_id", "account_id", "created_date"],
}

# Columns that may be absent from the source and are derived when missing
OPTIONAL_COLUMNS = {
    FEATURE_USAGE: ["account_id"],
}

DATE_COLUMNS = {
    ACCOUNTS: ["signup_date"],
    CHURN_EVENTS: ["churn_date"],
    FEATURE_USAGE: ["usage_date"],
    SUPPORT_TICKETS: ["created_date"],
}

NUMERIC_COLUMNS = {
    SUBSCRIPTIONS: ["mrr_amount"],
    CHURN_EVENTS: ["refund_amount_usd"],
    FEATURE_USAGE: ["usage_count"],
}

# Join keys, compared as strings so CSV and database sources line up
ID_COLUMNS = ["account_id", "subscription_id", "ticket_id"]


def find_missing_columns(name, columns):
    """Return the required columns of table ``name`` absent from ``columns``."""
    return [col for col in REQUIRED_COLUMNS[name] if col not in columns]
