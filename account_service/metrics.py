"""Prometheus counters for account workflows."""

from __future__ import annotations

from prometheus_client import Counter

ACCOUNTS_SAVED = Counter("accounts_saved_total", "Accounts persisted (created or updated).")
ACCOUNTS_REMOVED = Counter("accounts_removed_total", "Accounts deleted.")
LOGINS = Counter("logins_total", "Login attempts by outcome.", ["outcome"])
RECOVERY_EMAILS = Counter("recovery_emails_total", "Recovery emails by delivery outcome.", ["outcome"])
