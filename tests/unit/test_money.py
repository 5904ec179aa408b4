"""Unit tests for the Money value object and Entity model."""

from datetime import UTC, datetime

import pytest

from transaction_core.domain.exceptions import MalformedValueError
from transaction_core.domain.models import Entity, Money, TransactionStatus


class TestMoney:
    """Tests for Money value object."""

    def test_money_creation_success(self) -> None:
        """Valid Money object exposes its amount and currency."""
        money = Money(amount=1000, currency="USD")
        assert money.amount == 1000
        assert money.currency == "USD"

    def test_money_allows_negative_adjustments(self) -> None:
        """Negative amounts are valid for adjustments."""
        money = Money(amount=-250, currency="EUR")
        assert money.amount == -250

    def test_money_with_zero_amount(self) -> None:
        """Money with zero amount is valid."""
        assert Money(0, "USD").amount == 0

    def test_money_requires_amount(self) -> None:
        """A currency without an amount is malformed."""
        with pytest.raises(MalformedValueError, match="amount is required"):
            Money(amount=None, currency="USD")  # type: ignore[arg-type]

    def test_money_requires_currency(self) -> None:
        """An amount without a currency is malformed."""
        with pytest.raises(MalformedValueError, match="currency is required"):
            Money(amount=100, currency=None)  # type: ignore[arg-type]

    def test_money_rejects_empty_currency(self) -> None:
        """Empty currency code counts as missing."""
        with pytest.raises(MalformedValueError, match="currency is required"):
            Money(amount=100, currency="")

    def test_money_rejects_fractional_amount(self) -> None:
        """Amounts are integer minor units."""
        with pytest.raises(MalformedValueError, match="integer"):
            Money(amount=10.5, currency="USD")  # type: ignore[arg-type]

    def test_money_rejects_boolean_amount(self) -> None:
        """Booleans are not accepted as amounts."""
        with pytest.raises(MalformedValueError):
            Money(amount=True, currency="USD")

    def test_money_requires_3_letter_currency(self) -> None:
        """Money requires ISO 4217 currency code (3 letters)."""
        for currency in ["US", "DOLLAR", "U5D"]:
            with pytest.raises(MalformedValueError, match="ISO 4217"):
                Money(amount=100, currency=currency)

    def test_malformed_value_error_attributes(self) -> None:
        """MalformedValueError carries value type and reason."""
        with pytest.raises(MalformedValueError) as exc_info:
            Money(amount=None, currency="USD")  # type: ignore[arg-type]
        assert exc_info.value.value_type == "Money"
        assert exc_info.value.reason == "amount is required"

    def test_money_is_immutable(self) -> None:
        """Money is a frozen dataclass."""
        money = Money(1000, "USD")
        with pytest.raises(AttributeError):
            money.amount = 2000  # type: ignore[misc]

    def test_money_equality(self) -> None:
        """Money values are equal iff amount and currency are equal."""
        assert Money(1000, "USD") == Money(1000, "USD")
        assert Money(1000, "USD") != Money(2000, "USD")
        assert Money(1000, "USD") != Money(1000, "EUR")

    def test_money_various_pairs(self) -> None:
        """Accessors return exactly what was given."""
        pairs = [(0, "USD"), (1, "EUR"), (-99, "GBP"), (123456789, "JPY")]
        for amount, currency in pairs:
            money = Money(amount, currency)
            assert money.amount == amount
            assert money.currency == currency

    def test_money_from_dict(self) -> None:
        """Money can be rebuilt from its dict form."""
        assert Money.from_dict({"amount": 500, "currency": "CHF"}) == Money(500, "CHF")

    def test_money_from_incomplete_dict(self) -> None:
        """A dict missing the currency is malformed."""
        with pytest.raises(MalformedValueError):
            Money.from_dict({"amount": 500})

    def test_money_from_non_mapping(self) -> None:
        """Only mappings are accepted."""
        with pytest.raises(MalformedValueError, match="expected a mapping"):
            Money.from_dict([500, "USD"])  # type: ignore[arg-type]


class TestTransactionStatus:
    """Tests for TransactionStatus codes."""

    def test_new_status_value(self) -> None:
        """The initial status code is 'new'."""
        assert TransactionStatus.NEW == "new"

    def test_status_compares_to_plain_strings(self) -> None:
        """Status codes are interchangeable with strings."""
        assert TransactionStatus("completed") is TransactionStatus.COMPLETED
        assert TransactionStatus.REFUNDED == "refunded"


class TestEntity:
    """Tests for Entity model."""

    def test_entity_export(self) -> None:
        """Export contains base attributes with ISO timestamps."""
        entity = Entity(
            id="01ENTITY",
            subtype="merchant",
            title="Acme",
            description="Sells things",
            created_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        export = entity.to_export()
        assert export["guid"] == "01ENTITY"
        assert export["subtype"] == "merchant"
        assert export["title"] == "Acme"
        assert export["time_created"] == "2024-01-01T00:00:00+00:00"
        assert export["time_updated"] is None

    def test_entity_dict_round_trip(self) -> None:
        """Entity can be rebuilt from its dict form."""
        entity = Entity(id="01ENTITY", subtype="user", metadata={"email": "a@example.com"})
        assert Entity.from_dict(entity.to_dict()) == entity

    def test_entity_metadata_defaults_empty(self) -> None:
        """Entities start with no metadata."""
        assert Entity(subtype="user").metadata == {}
