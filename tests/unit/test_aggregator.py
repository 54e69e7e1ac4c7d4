import pytest
from datetime import date

from simple_ledger.domain.enums import AccountType, CategoryGranularity, Side
from simple_ledger.domain.errors import AccountNotFoundError
from simple_ledger.domain.models import Account, JournalEntry
from simple_ledger.ledger.aggregator import Flow, LedgerAggregator, classify
from simple_ledger.registry.chart_of_accounts import ChartOfAccounts
from simple_ledger.validation.validator import TransactionValidator

SALES, CASH, RENT, RETIRED = 1, 2, 3, 4
UTILITIES, INTEREST = 5, 6


@pytest.fixture
def aggregator(registry: ChartOfAccounts) -> LedgerAggregator:
    return LedgerAggregator(registry)


@pytest.fixture
def post(validator, candidate):
    """Validate a candidate and give it a storage id, as the repository would"""
    counter = {"next": 1}

    def make(entries, on=date(2025, 1, 15), memo="txn"):
        txn = validator.validate(candidate(entries, memo=memo, on=on)).raise_for_errors()
        txn = txn.with_id(counter["next"])
        counter["next"] += 1
        return txn
    return make


@pytest.mark.unit
class TestClassify:

    @pytest.mark.parametrize("account_type, side, expected", [
        (AccountType.REVENUE, Side.CREDIT, Flow.INCOME),
        (AccountType.REVENUE, Side.DEBIT, None),
        (AccountType.EXPENSE, Side.DEBIT, Flow.EXPENSE),
        (AccountType.EXPENSE, Side.CREDIT, None),
        (AccountType.ASSET, Side.DEBIT, None),
        (AccountType.LIABILITY, Side.CREDIT, None),
        (AccountType.EQUITY, Side.CREDIT, None),
    ])
    def test_classification_table(self, account_type, side, expected):
        account = Account.create(id=1, code="1", name="x", type=account_type)
        entry = JournalEntry(account_id=1, side=side, amount=10)

        assert classify(entry, account) == expected


@pytest.mark.unit
class TestAggregate:

    def test_empty_input(self, aggregator: LedgerAggregator):
        summary = aggregator.aggregate([])

        assert summary.total_income == 0
        assert summary.total_expense == 0
        assert summary.balance == 0
        assert summary.income_by_category == {}
        assert summary.transaction_count == 0

    def test_sale_then_rent(self, aggregator, post, debit, credit):
        """A cash sale of 1000 followed by 300 of rent leaves a balance of 700"""
        # Arrange
        sale = post([debit(CASH, 1000), credit(SALES, 1000)])
        rent = post([debit(RENT, 300), credit(CASH, 300)])

        # Act
        after_sale = aggregator.aggregate([sale])
        after_rent = aggregator.aggregate([sale, rent])

        # Assert
        assert (after_sale.total_income, after_sale.total_expense, after_sale.balance) == (1000, 0, 1000)
        assert (after_rent.total_income, after_rent.total_expense, after_rent.balance) == (1000, 300, 700)
        assert after_rent.income_by_category == {"4000": 1000}
        assert after_rent.expense_by_category == {"6300": 300}
        assert after_rent.category_labels["6300"] == "Rent"
        assert after_rent.transaction_count == 2

    def test_balance_sheet_only_transaction_contributes_nothing(self, aggregator, post, debit, credit):
        txn = post([debit(CASH, 500), credit(CASH, 500)])

        summary = aggregator.aggregate([txn])

        assert summary.total_income == 0
        assert summary.total_expense == 0
        assert summary.transaction_count == 1

    def test_debit_to_revenue_is_not_income(self, aggregator, post, debit, credit):
        """A refund (debit to revenue) does not reduce income; it is simply not counted"""
        refund = post([debit(SALES, 200), credit(CASH, 200)])

        summary = aggregator.aggregate([refund])

        assert summary.total_income == 0
        assert summary.income_by_category == {}

    def test_aggregation_is_idempotent(self, aggregator, post, debit, credit):
        transactions = [
            post([debit(CASH, 1000), credit(SALES, 1000)]),
            post([debit(RENT, 300), credit(CASH, 300)]),
        ]

        first = aggregator.aggregate(transactions)
        second = aggregator.aggregate(transactions)

        assert first == second
        assert list(first.expense_by_category) == list(second.expense_by_category)

    def test_accepts_a_generator(self, aggregator, post, debit, credit):
        sale = post([debit(CASH, 1000), credit(SALES, 1000)])

        summary = aggregator.aggregate(t for t in [sale])

        assert summary.total_income == 1000

    def test_totals_match_sum_of_classified_entries(self, aggregator, post, debit, credit):
        transactions = [
            post([debit(CASH, 1000), credit(SALES, 600), credit(SALES, 400)]),
            post([debit(RENT, 250), debit(RENT, 50), credit(CASH, 300)]),
            post([debit(SALES, 100), credit(CASH, 100)]),
        ]

        summary = aggregator.aggregate(transactions)

        assert summary.total_income == 1000
        assert summary.total_expense == 300

    def test_inactive_account_history_still_counts(self, post, debit, credit, accounts):
        """Retiring an account does not rewrite history"""
        # Arrange
        txn = post([debit(CASH, 50), credit(SALES, 50)])
        retired_sales = [
            a if a.id != SALES else Account.create(
                id=SALES, code="4000", name="Sales", type=AccountType.REVENUE, active=False
            )
            for a in accounts
        ]

        # Act
        summary = LedgerAggregator(ChartOfAccounts(retired_sales)).aggregate([txn])

        # Assert
        assert summary.total_income == 50

    def test_unknown_account_is_skipped(self, post, debit, credit, accounts):
        txn = post([debit(CASH, 50), credit(SALES, 50)])
        without_sales = ChartOfAccounts([a for a in accounts if a.id != SALES])

        summary = LedgerAggregator(without_sales).aggregate([txn])

        assert summary.total_income == 0
        assert summary.transaction_count == 1


@pytest.mark.unit
class TestGranularity:

    @pytest.fixture
    def wide_registry(self, accounts) -> ChartOfAccounts:
        return ChartOfAccounts(accounts + [
            Account.create(id=UTILITIES, code="6400", name="Utilities", type=AccountType.EXPENSE),
            Account.create(id=INTEREST, code="4300", name="Interest Income", type=AccountType.REVENUE),
        ])

    @pytest.fixture
    def transactions(self, wide_registry, candidate, debit, credit):
        validator = TransactionValidator(wide_registry)
        return [
            validator.validate(candidate(entries)).raise_for_errors()
            for entries in (
                [debit(CASH, 1000), credit(SALES, 1000)],
                [debit(CASH, 20), credit(INTEREST, 20)],
                [debit(UTILITIES, 80), credit(CASH, 80)],
                [debit(RENT, 300), credit(CASH, 300)],
            )
        ]

    def test_account_granularity_orders_by_code(self, wide_registry, transactions):
        summary = LedgerAggregator(wide_registry).aggregate(transactions)

        assert list(summary.income_by_category) == ["4000", "4300"]
        assert list(summary.expense_by_category) == ["6300", "6400"]

    def test_account_type_granularity(self, wide_registry, transactions):
        summary = LedgerAggregator(wide_registry).aggregate(
            transactions, CategoryGranularity.ACCOUNT_TYPE
        )

        assert summary.income_by_category == {"revenue": 1020}
        assert summary.expense_by_category == {"expense": 380}
        assert summary.category_labels["expense"] == "Expense"

    def test_top_expense_categories(self, wide_registry, transactions):
        summary = LedgerAggregator(wide_registry).aggregate(transactions)

        assert [c.key for c in summary.top_expense_categories()] == ["6300", "6400"]


@pytest.mark.unit
class TestBalances:

    def test_monthly_balances_oldest_first(self, aggregator, post, debit, credit):
        transactions = [
            post([debit(RENT, 300), credit(CASH, 300)], on=date(2025, 2, 1)),
            post([debit(CASH, 1000), credit(SALES, 1000)], on=date(2025, 1, 10)),
            post([debit(CASH, 500), credit(SALES, 500)], on=date(2025, 2, 20)),
        ]

        months = aggregator.monthly_balances(transactions)

        assert [m.label for m in months] == ["2025-01", "2025-02"]
        assert (months[0].income, months[0].expense) == (1000, 0)
        assert (months[1].income, months[1].expense, months[1].balance) == (500, 300, 200)

    def test_account_balance_signed_by_normal_balance(self, aggregator, post, debit, credit):
        transactions = [
            post([debit(CASH, 1000), credit(SALES, 1000)]),
            post([debit(RENT, 300), credit(CASH, 300)]),
        ]

        assert aggregator.account_balance(CASH, transactions) == 700
        assert aggregator.account_balance(SALES, transactions) == 1000
        assert aggregator.account_balance(RENT, transactions) == 300

    def test_account_balance_unknown_account(self, aggregator):
        with pytest.raises(AccountNotFoundError):
            aggregator.account_balance(42, [])

    def test_trial_balance(self, aggregator, post, debit, credit):
        transactions = [
            post([debit(CASH, 1000), credit(SALES, 1000)]),
            post([debit(RENT, 300), credit(CASH, 300)]),
        ]

        assert aggregator.trial_balance(transactions) == {"1000": 700, "4000": 1000, "6300": 300}
