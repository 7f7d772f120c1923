"""Tests for the loan lifecycle service."""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from microlend.config import ScheduleConfig
from microlend.exceptions import (
    EntityNotFoundError,
    InvalidLoanStateError,
    ReferentialIntegrityError,
    ScheduleGenerationError,
    ValidationError,
)
from microlend.models import Loan, LoanFrequency, LoanStatus, PaymentType, ScheduleEntry, ScheduleStatus
from microlend.services import LoanService, derive_loan_status, validate_loan
from microlend.store import LoanStore


@pytest.fixture
def created_fixed(service: LoanService, fixed_loan: Loan) -> Loan:
    """Store the fixed loan: 4 weekly installments of 300 due Jan 8, 15, 22, 29 2024."""
    service.create_loan(fixed_loan)
    return fixed_loan


def _renewal(loan_id: str = "loan-renewal", principal: str = "2000", **changes) -> Loan:
    loan = Loan(
        loan_id=loan_id,
        client_id="client-test-001",
        principal=Decimal(principal),
        payment_type=PaymentType.INTEREST_RATE,
        frequency=LoanFrequency.WEEKLY,
        issue_date=date(2024, 1, 20),
        term=10,
        interest_rate=Decimal("30"),
    )
    return replace(loan, **changes)


class TestValidateLoan:
    """Tests for validate_loan."""

    def test_valid(self, sample_loan: Loan, fixed_loan: Loan) -> None:
        """Test valid loans have no errors."""
        assert validate_loan(sample_loan) == {}
        assert validate_loan(fixed_loan) == {}

    @pytest.mark.parametrize("principal", [Decimal("0"), Decimal("-1"), None, "abc"])
    def test_principal(self, sample_loan: Loan, principal) -> None:
        """Test a non-positive or missing principal."""
        assert validate_loan(replace(sample_loan, principal=principal)) == {
            "principal": "Amount must be greater than 0"
        }

    @pytest.mark.parametrize("term", [0, -3, 2.5, None, True])
    def test_term(self, sample_loan: Loan, term) -> None:
        """Test a term that is not a positive whole number."""
        assert set(validate_loan(replace(sample_loan, term=term))) == {"term"}

    def test_interest_rate_required(self, sample_loan: Loan) -> None:
        """Test INTEREST_RATE loans need a positive rate."""
        errors = validate_loan(replace(sample_loan, interest_rate=Decimal("0")))
        assert errors == {"interest_rate": "Interest rate must be greater than 0"}

    def test_fixed_payment_required(self, fixed_loan: Loan) -> None:
        """Test FIXED loans need a positive fixed payment."""
        errors = validate_loan(replace(fixed_loan, fixed_payment=None))
        assert errors == {"fixed_payment": "Fixed payment must be greater than 0"}

    def test_unknown_frequency(self, sample_loan: Loan) -> None:
        """Test a frequency outside the enum is reported."""
        assert "frequency" in validate_loan(replace(sample_loan, frequency="YEARLY"))

    def test_several_errors(self, sample_loan: Loan) -> None:
        """Test every failing field is reported at once."""
        errors = validate_loan(replace(sample_loan, principal=Decimal("0"), term=0, interest_rate=None))
        assert set(errors) == {"principal", "term", "interest_rate"}


class TestDeriveLoanStatus:
    """Tests for derive_loan_status."""

    def _entry(self, status: ScheduleStatus) -> ScheduleEntry:
        return ScheduleEntry("loan-001", 1, date(2024, 1, 1), Decimal("10"), status=status)

    def test_all_paid(self) -> None:
        """Test a fully paid schedule means a paid loan."""
        assert derive_loan_status([self._entry(ScheduleStatus.PAID)] * 2) == LoanStatus.PAID

    def test_any_overdue(self) -> None:
        """Test one overdue entry makes the loan overdue."""
        entries = [self._entry(ScheduleStatus.PAID), self._entry(ScheduleStatus.OVERDUE)]
        assert derive_loan_status(entries) == LoanStatus.OVERDUE

    def test_pending(self) -> None:
        """Test pending entries keep the loan active."""
        assert derive_loan_status([self._entry(ScheduleStatus.PENDING)]) == LoanStatus.ACTIVE
        assert derive_loan_status([]) == LoanStatus.ACTIVE


class TestCreateLoan:
    """Tests for LoanService.create_loan."""

    def test_creates_loan_and_schedule(self, service: LoanService, store: LoanStore, sample_loan: Loan) -> None:
        """Test the loan and its schedule are stored."""
        schedule = service.create_loan(sample_loan)

        assert len(schedule) == 12
        assert store.get_schedule(sample_loan.loan_id) == schedule
        assert schedule[0].amount_due == Decimal("87.92")
        assert store.get_loan(sample_loan.loan_id).status == LoanStatus.ACTIVE

    def test_status_forced_active(self, service: LoanService, store: LoanStore, sample_loan: Loan) -> None:
        """Test a new loan always starts active."""
        sample_loan.status = LoanStatus.PAID
        service.create_loan(sample_loan)

        assert store.get_loan(sample_loan.loan_id).status == LoanStatus.ACTIVE

    def test_invalid_loan(self, service: LoanService, store: LoanStore, sample_loan: Loan) -> None:
        """Test an invalid loan is rejected before anything is stored."""
        with pytest.raises(ValidationError) as exc_info:
            service.create_loan(replace(sample_loan, term=0))

        assert "term" in exc_info.value.errors
        assert store.summary()["loans"] == 0

    def test_unresolvable_schedule_rolls_back(self, service: LoanService, store: LoanStore, sample_loan: Loan) -> None:
        """Test a loan whose schedule cannot be generated is not kept."""
        before = store.summary()

        with pytest.raises(ScheduleGenerationError, match="could not calculate payment schedule"):
            service.create_loan(replace(sample_loan, interest_rate=Decimal("1E-28")))

        assert store.summary() == before
        with pytest.raises(EntityNotFoundError):
            store.get_loan(sample_loan.loan_id)

    def test_unknown_client(self, service: LoanService, sample_loan: Loan) -> None:
        """Test a loan for an unknown client is rejected."""
        with pytest.raises(ReferentialIntegrityError):
            service.create_loan(replace(sample_loan, client_id="ghost"))

    def test_from_config(self, store: LoanStore) -> None:
        """Test building a service from configuration."""
        service = LoanService.from_config(store, ScheduleConfig(anchor_hour_utc=3, renewal_max_unpaid=1))

        assert service.generator.anchor_hour == 3
        assert service.renewal_max_unpaid == 1

    def test_preview_matches_created_schedule(self, service: LoanService, sample_loan: Loan) -> None:
        """Test the form estimate equals the stored installment."""
        schedule = service.create_loan(sample_loan)
        assert service.preview_installment("1000", "10", "12", "MONTHLY") == schedule[0].amount_due


class TestEditLoan:
    """Tests for LoanService.edit_loan."""

    def test_non_financial_edit_keeps_schedule(self, service: LoanService, store: LoanStore, sample_loan: Loan) -> None:
        """Test changing the route leaves the schedule alone."""
        schedule = service.create_loan(sample_loan)

        updated = service.edit_loan(sample_loan.loan_id, route_id="RUTA-05")

        assert updated.route_id == "RUTA-05"
        assert store.get_loan(sample_loan.loan_id).route_id == "RUTA-05"
        assert store.get_schedule(sample_loan.loan_id) == schedule

    def test_financial_edit_regenerates(self, service: LoanService, store: LoanStore, sample_loan: Loan) -> None:
        """Test changing the term replaces the schedule."""
        service.create_loan(sample_loan)

        service.edit_loan(sample_loan.loan_id, term=6, interest_rate=Decimal("12"))

        schedule = store.get_schedule(sample_loan.loan_id)
        assert [e.installment_number for e in schedule] == [1, 2, 3, 4, 5, 6]
        assert schedule[0].amount_due == Decimal("172.55")

    def test_issue_date_edit_moves_due_dates(self, service: LoanService, store: LoanStore, sample_loan: Loan) -> None:
        """Test changing the issue date moves every due date."""
        service.create_loan(sample_loan)

        service.edit_loan(sample_loan.loan_id, issue_date=date(2024, 1, 31))

        assert store.get_schedule(sample_loan.loan_id)[0].due_date == date(2024, 2, 29)

    def test_unchanged_value_is_not_a_change(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test resubmitting the same terms after payments is allowed."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        service.edit_loan(created_fixed.loan_id, term=4, employee_id="EMP-002")

        assert store.get_schedule(created_fixed.loan_id)[0].status == ScheduleStatus.PAID

    def test_payments_block_financial_edit(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test terms cannot change once money was collected."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        with pytest.raises(InvalidLoanStateError):
            service.edit_loan(created_fixed.loan_id, fixed_payment=Decimal("250"))

        assert store.get_loan(created_fixed.loan_id).fixed_payment == Decimal("300")

    def test_unknown_field(self, service: LoanService, created_fixed: Loan) -> None:
        """Test fields outside the editable set are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            service.edit_loan(created_fixed.loan_id, status=LoanStatus.PAID, colour="red")

        assert set(exc_info.value.errors) == {"colour", "status"}

    def test_invalid_new_terms(self, service: LoanService, created_fixed: Loan) -> None:
        """Test new terms are validated."""
        with pytest.raises(ValidationError):
            service.edit_loan(created_fixed.loan_id, principal=Decimal("-1"))

    def test_regeneration_resets_overdue_status(
        self, service: LoanService, store: LoanStore, sample_loan: Loan
    ) -> None:
        """Test a loan with a fresh schedule takes the status of its new installments."""
        service.create_loan(sample_loan)
        service.refresh_overdue(sample_loan.loan_id, as_of=date(2024, 1, 15))
        assert store.get_loan(sample_loan.loan_id).status == LoanStatus.OVERDUE

        updated = service.edit_loan(sample_loan.loan_id, issue_date=date(2024, 1, 10))

        schedule = store.get_schedule(sample_loan.loan_id)
        assert all(e.status == ScheduleStatus.PENDING for e in schedule)
        assert updated.status == LoanStatus.ACTIVE
        assert store.get_loan(sample_loan.loan_id).status == LoanStatus.ACTIVE

    def test_failed_regeneration_rolls_back(self, service: LoanService, store: LoanStore, sample_loan: Loan) -> None:
        """Test a failed regeneration keeps the old loan and schedule."""
        schedule = service.create_loan(sample_loan)

        with pytest.raises(ScheduleGenerationError):
            service.edit_loan(sample_loan.loan_id, interest_rate=Decimal("1E-28"))

        assert store.get_loan(sample_loan.loan_id).interest_rate == Decimal("10")
        assert store.get_schedule(sample_loan.loan_id) == schedule

    def test_unknown_loan(self, service: LoanService) -> None:
        """Test editing an unknown loan raises."""
        with pytest.raises(EntityNotFoundError):
            service.edit_loan("nope", route_id="RUTA-01")


class TestRecordPayment:
    """Tests for LoanService.record_payment."""

    def test_full_payment(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test paying the whole installment marks it paid."""
        payment = service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        entry = store.get_schedule(created_fixed.loan_id)[0]
        assert entry.status == ScheduleStatus.PAID
        assert entry.amount_paid == Decimal("300")
        assert entry.payment_date == date(2024, 1, 8)
        assert payment.installment_number == 1
        assert payment.recorded_by == "EMP-001"
        assert store.get_payments(created_fixed.loan_id) == [payment]

    def test_partial_payments_accumulate(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test partial payments add up until the installment is covered."""
        service.record_payment(created_fixed.loan_id, 1, "100", date(2024, 1, 8), "EMP-001")
        entry = store.get_schedule(created_fixed.loan_id)[0]
        assert entry.status == ScheduleStatus.PENDING
        assert entry.amount_paid == Decimal("100")

        service.record_payment(created_fixed.loan_id, 1, 200, date(2024, 1, 9), "EMP-001")
        entry = store.get_schedule(created_fixed.loan_id)[0]
        assert entry.status == ScheduleStatus.PAID
        assert entry.payment_date == date(2024, 1, 9)

    def test_paying_everything_closes_loan(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test the loan is paid once every installment is."""
        for n in range(1, 5):
            service.record_payment(created_fixed.loan_id, n, Decimal("300"), date(2024, 1, 29), "EMP-001")

        assert store.get_loan(created_fixed.loan_id).status == LoanStatus.PAID

        with pytest.raises(InvalidLoanStateError):
            service.record_payment(created_fixed.loan_id, 4, Decimal("1"), date(2024, 2, 1), "EMP-001")

    @pytest.mark.parametrize("amount", [0, -5, "abc", "NaN"])
    def test_invalid_amount(self, service: LoanService, created_fixed: Loan, amount) -> None:
        """Test non-positive or non-numeric amounts are rejected."""
        with pytest.raises(ValidationError):
            service.record_payment(created_fixed.loan_id, 1, amount, date(2024, 1, 8), "EMP-001")

    def test_unknown_installment(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test paying an installment that does not exist raises and stores nothing."""
        with pytest.raises(EntityNotFoundError):
            service.record_payment(created_fixed.loan_id, 9, Decimal("300"), date(2024, 1, 8), "EMP-001")

        assert store.get_payments(created_fixed.loan_id) == []

    def test_default_payment_date(self, service: LoanService, created_fixed: Loan) -> None:
        """Test the payment date defaults to today."""
        payment = service.record_payment(created_fixed.loan_id, 1, Decimal("300"), recorded_by="EMP-001")
        assert payment.payment_date == date.today()


class TestRefreshOverdue:
    """Tests for LoanService.refresh_overdue."""

    def test_marks_past_due_entries(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test pending entries due before the date become overdue."""
        changed = service.refresh_overdue(created_fixed.loan_id, as_of=date(2024, 1, 20))

        assert [e.installment_number for e in changed] == [1, 2]
        statuses = [e.status for e in store.get_schedule(created_fixed.loan_id)]
        assert statuses == [
            ScheduleStatus.OVERDUE,
            ScheduleStatus.OVERDUE,
            ScheduleStatus.PENDING,
            ScheduleStatus.PENDING,
        ]
        assert store.get_loan(created_fixed.loan_id).status == LoanStatus.OVERDUE

    def test_due_today_is_not_overdue(self, service: LoanService, created_fixed: Loan) -> None:
        """Test an installment due on the date itself is not overdue."""
        changed = service.refresh_overdue(created_fixed.loan_id, as_of=date(2024, 1, 8))
        assert changed == []

    def test_paid_entries_untouched(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test paid installments stay paid."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        changed = service.refresh_overdue(created_fixed.loan_id, as_of=date(2024, 1, 16))

        assert [e.installment_number for e in changed] == [2]
        assert store.get_schedule(created_fixed.loan_id)[0].status == ScheduleStatus.PAID

    def test_catching_up_reactivates(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test paying the overdue installments makes the loan active again."""
        service.refresh_overdue(created_fixed.loan_id, as_of=date(2024, 1, 16))
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 17), "EMP-001")
        assert store.get_loan(created_fixed.loan_id).status == LoanStatus.OVERDUE

        service.record_payment(created_fixed.loan_id, 2, Decimal("300"), date(2024, 1, 17), "EMP-001")
        assert store.get_loan(created_fixed.loan_id).status == LoanStatus.ACTIVE


class TestBalanceAndSettlement:
    """Tests for balance and settle_loan."""

    def test_balance(self, service: LoanService, created_fixed: Loan) -> None:
        """Test amounts after one partial payment."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("120.50"), date(2024, 1, 8), "EMP-001")

        balance = service.balance(created_fixed.loan_id)

        assert balance.total_due == Decimal("1200")
        assert balance.total_paid == Decimal("120.50")
        assert balance.remaining == Decimal("1079.50")
        assert balance.unpaid_installments == 4

    def test_balance_unknown_loan(self, service: LoanService) -> None:
        """Test the balance of an unknown loan raises."""
        with pytest.raises(EntityNotFoundError):
            service.balance("nope")

    def test_settle(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test settling pays the remainder against the first unpaid installment."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        payment = service.settle_loan(created_fixed.loan_id, "EMP-002", as_of=date(2024, 1, 10))

        assert payment.amount == Decimal("900.00")
        assert payment.installment_number == 2
        assert payment.payment_date == date(2024, 1, 10)
        schedule = store.get_schedule(created_fixed.loan_id)
        assert all(e.status == ScheduleStatus.PAID for e in schedule)
        assert all(e.amount_paid == e.amount_due for e in schedule)
        assert schedule[3].payment_date == date(2024, 1, 10)
        assert store.get_loan(created_fixed.loan_id).status == LoanStatus.PAID
        assert service.balance(created_fixed.loan_id).remaining == Decimal("0.00")

    def test_settle_paid_loan(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test settling a paid loan does nothing."""
        service.settle_loan(created_fixed.loan_id, "EMP-001", as_of=date(2024, 1, 10))

        assert service.settle_loan(created_fixed.loan_id, "EMP-001") is None
        assert len(store.get_payments(created_fixed.loan_id)) == 1


class TestRenewLoan:
    """Tests for can_renew and renew_loan."""

    def test_can_renew(self, service: LoanService, created_fixed: Loan) -> None:
        """Test renewal needs at most three unpaid installments."""
        assert service.can_renew(created_fixed.loan_id) is False

        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        assert service.can_renew(created_fixed.loan_id) is True

    def test_paid_loan_cannot_be_renewed(self, service: LoanService, created_fixed: Loan) -> None:
        """Test a paid loan is not renewable."""
        service.settle_loan(created_fixed.loan_id, "EMP-001", as_of=date(2024, 1, 10))
        assert service.can_renew(created_fixed.loan_id) is False

    def test_custom_threshold(self, store: LoanStore, fixed_loan: Loan) -> None:
        """Test the unpaid-installment threshold is configurable."""
        service = LoanService(store, renewal_max_unpaid=4)
        service.create_loan(fixed_loan)

        assert service.can_renew(fixed_loan.loan_id) is True

    def test_renew(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test the old loan is settled and the new one created."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        result = service.renew_loan(created_fixed.loan_id, _renewal(), "EMP-002", as_of=date(2024, 1, 20))

        assert result.old_loan_id == created_fixed.loan_id
        assert result.payoff_amount == Decimal("900.00")
        assert result.net_to_client == Decimal("1100.00")
        assert len(result.schedule) == 10
        assert result.schedule[0].due_date == date(2024, 1, 27)

        assert store.get_loan(created_fixed.loan_id).status == LoanStatus.PAID
        assert store.get_loan("loan-renewal").status == LoanStatus.ACTIVE
        assert store.get_schedule("loan-renewal") == result.schedule
        settlement = store.get_payments(created_fixed.loan_id)[-1]
        assert settlement.amount == Decimal("900.00")
        assert settlement.recorded_by == "EMP-002"

    def test_renewal_refused(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test a loan with too many unpaid installments cannot be renewed."""
        with pytest.raises(InvalidLoanStateError):
            service.renew_loan(created_fixed.loan_id, _renewal(), "EMP-001")

        assert store.summary()["loans"] == 1

    def test_other_client(self, service: LoanService, created_fixed: Loan) -> None:
        """Test a renewal must stay with the same client."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        with pytest.raises(ValidationError) as exc_info:
            service.renew_loan(created_fixed.loan_id, _renewal(client_id="other"), "EMP-001")
        assert "client_id" in exc_info.value.errors

    def test_principal_must_exceed_payoff(self, service: LoanService, created_fixed: Loan) -> None:
        """Test the new amount must be larger than what is owed."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")

        with pytest.raises(ValidationError) as exc_info:
            service.renew_loan(created_fixed.loan_id, _renewal(principal="900"), "EMP-001")
        assert "principal" in exc_info.value.errors

    def test_failed_renewal_rolls_back(self, service: LoanService, store: LoanStore, created_fixed: Loan) -> None:
        """Test a new loan without a schedule leaves the old loan as it was."""
        service.record_payment(created_fixed.loan_id, 1, Decimal("300"), date(2024, 1, 8), "EMP-001")
        before = store.summary()
        old_schedule = store.get_schedule(created_fixed.loan_id)

        with pytest.raises(ScheduleGenerationError):
            service.renew_loan(
                created_fixed.loan_id,
                _renewal(interest_rate=Decimal("1E-28")),
                "EMP-001",
                as_of=date(2024, 1, 20),
            )

        assert store.summary() == before
        assert store.get_loan(created_fixed.loan_id).status == LoanStatus.ACTIVE
        assert store.get_schedule(created_fixed.loan_id) == old_schedule
        with pytest.raises(EntityNotFoundError):
            store.get_loan("loan-renewal")
