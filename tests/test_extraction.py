"""
Tests for the pattern extraction engine.
"""

import datetime as dt
from decimal import Decimal

import pytest

from ledger_sync.models.transaction import ConfirmationType, SourceType, TransactionType
from ledger_sync.parsing import (
    PatternExtractor,
    RuleRegistry,
    RuleSet,
    clean_merchant_name,
    default_notification_rules,
    default_sms_rules,
    timestamp_to_date,
)


# 2024-06-01 12:00:00 UTC
TIMESTAMP_MS = 1717243200000


@pytest.fixture
def sms_extractor() -> PatternExtractor:
    return PatternExtractor(default_sms_rules(), SourceType.SMS)


@pytest.fixture
def notification_extractor() -> PatternExtractor:
    return PatternExtractor(default_notification_rules(), SourceType.NOTIFICATION)


class TestSmsExtraction:
    """Tests for SMS rule sets."""

    def test_revolut_expense(self, sms_extractor):
        """Test the basic Italian Revolut expense alert."""
        candidate = sms_extractor.extract("Revolut", "Hai speso 1,00 € presso Amazon", TIMESTAMP_MS)

        assert candidate is not None
        assert candidate.type == TransactionType.EXPENSE
        assert candidate.amount == Decimal("1.00")
        assert candidate.description == "Amazon"
        assert candidate.account == "Revolut"
        assert candidate.source_type == SourceType.SMS
        assert candidate.source_app == "revolut"
        assert candidate.date == dt.date(2024, 6, 1)
        assert candidate.requires_confirmation is False

    def test_sender_match_is_case_insensitive_substring(self, sms_extractor):
        candidate = sms_extractor.extract("REVOLUT-ALERT", "Hai speso 3,50 € presso Bar", TIMESTAMP_MS)
        assert candidate is not None
        assert candidate.amount == Decimal("3.50")

    def test_transfer_captures_destination(self, sms_extractor):
        candidate = sms_extractor.extract("Revolut", "Trasferimento di 100,00 € a Mario Rossi", TIMESTAMP_MS)

        assert candidate.type == TransactionType.TRANSFER
        assert candidate.to_account == "Mario Rossi"
        assert candidate.description == "Transfer"

    def test_income_without_counterparty_uses_default_description(self, sms_extractor):
        candidate = sms_extractor.extract("Postepay", "Accredito di 200,00 EUR sulla tua carta", TIMESTAMP_MS)

        assert candidate.type == TransactionType.INCOME
        assert candidate.amount == Decimal("200.00")
        assert candidate.description == "Credit"
        assert candidate.account == "Postepay"

    def test_expense_wins_over_later_patterns(self):
        """Test pattern order expense -> income -> transfer."""
        registry = RuleRegistry([
            RuleSet(
                name="Test",
                identifier="test",
                account_name="Test",
                expense=r"moved (\d+(?:[.,]\d+)*) to (.+)",
                transfer=r"moved (\d+(?:[.,]\d+)*) to (.+)",
            ),
        ])
        candidate = PatternExtractor(registry, SourceType.SMS).extract("test", "moved 5 to Shop", TIMESTAMP_MS)
        assert candidate.type == TransactionType.EXPENSE

    def test_zero_amount_is_unrecognized(self, sms_extractor):
        assert sms_extractor.extract("Revolut", "Hai speso 0,00 € presso Amazon", TIMESTAMP_MS) is None

    def test_unknown_sender_is_unrecognized(self, sms_extractor):
        assert sms_extractor.extract("MyGym", "Hai speso 10,00 € presso Gym", TIMESTAMP_MS) is None

    def test_no_pattern_matched(self, sms_extractor):
        assert sms_extractor.extract("Revolut", "Il tuo codice OTP è 123456", TIMESTAMP_MS) is None

    def test_large_european_amount(self, sms_extractor):
        candidate = sms_extractor.extract("Revolut", "Hai speso 1.250,50 € presso Apple Store", TIMESTAMP_MS)
        assert candidate.amount == Decimal("1250.50")


class TestTransferDetection:
    """Expenses whose counterparty names a bank or wallet."""

    def test_bank_counterparty_requires_confirmation(self, sms_extractor):
        candidate = sms_extractor.extract("Revolut", "Hai speso 50,00 € presso PayPal Europe", TIMESTAMP_MS)

        assert candidate.type == TransactionType.EXPENSE
        assert candidate.requires_confirmation is True
        assert candidate.confirmation_type == ConfirmationType.TRANSFER_OR_EXPENSE

    def test_keywords_match_whole_words_only(self, sms_extractor):
        """Test that 'ing' does not fire inside 'Ingrosso'."""
        candidate = sms_extractor.extract("Revolut", "Hai speso 20,00 € presso Ingrosso Frutta", TIMESTAMP_MS)
        assert candidate.requires_confirmation is False

    def test_custom_keywords(self):
        extractor = PatternExtractor(default_sms_rules(), SourceType.SMS, transfer_keywords=["wallet"])
        assert extractor.is_likely_transfer("My Wallet top-up")
        assert not extractor.is_likely_transfer("Revolut")


class TestNotificationExtraction:
    """Tests for notification rule sets."""

    def test_revolut_english_notification(self, notification_extractor):
        candidate = notification_extractor.extract(
            "com.revolut.revolut",
            "Payment sent You spent 23.40 EUR at Starbucks",
            TIMESTAMP_MS,
        )
        assert candidate.type == TransactionType.EXPENSE
        assert candidate.amount == Decimal("23.40")
        assert candidate.description == "Starbucks"
        assert candidate.source_type == SourceType.NOTIFICATION

    def test_supported_sources(self, notification_extractor):
        assert "Revolut" in notification_extractor.supported_sources()


class TestHelpers:

    def test_clean_merchant_name(self):
        assert clean_merchant_name("AMAZON 01/06/2024 ore 12:30") == "AMAZON"
        assert clean_merchant_name("Bar Centrale per info chiama 800") == "Bar Centrale"
        assert clean_merchant_name("Shop *1234* Milano") == "Shop  Milano"

    def test_clean_merchant_name_never_empty(self):
        assert clean_merchant_name("  12:30 ") == "12:30"

    def test_timestamp_to_date_is_utc(self):
        # 2024-06-01 23:30 UTC stays on the 1st
        assert timestamp_to_date(1717284600000) == dt.date(2024, 6, 1)
