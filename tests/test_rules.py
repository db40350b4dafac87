"""
Tests for the pure business rules: chit arithmetic, bids, eligibility,
EMI and loan lifecycle, risk levels and formatting helpers
"""
import unittest
from datetime import date, datetime
from decimal import Decimal

from chitfund.chit import rules
from chitfund.core.utils import format_inr, random_code, to_money
from chitfund.customer.eligibility import (
    ELIGIBLE_MESSAGE,
    NOT_ELIGIBLE_MESSAGE,
    check_eligibility,
    is_eligible,
)
from chitfund.loan import calculator
from chitfund.qrcode.repository import status_for
from chitfund.risk.scoring import credit_history, risk_level
from chitfund.session.manager import is_expired, is_warning_due, time_remaining


class InstallmentTests(unittest.TestCase):
    """Test installment arithmetic"""

    def test_even_split(self):
        result = rules.calculate_installment(100000, 20, 5)
        self.assertEqual(result.installment, Decimal("5000.00"))
        self.assertEqual(result.monthly_collection, Decimal("100000.00"))
        self.assertEqual(result.total_commission, Decimal("5000.00"))

    def test_uneven_split_is_rounded(self):
        result = rules.calculate_installment(100000, 3)
        self.assertEqual(result.installment, Decimal("33333.33"))
        self.assertEqual(result.monthly_collection, Decimal("99999.99"))
        self.assertEqual(result.total_commission, Decimal("0.00"))

    def test_zero_members_does_not_divide(self):
        result = rules.calculate_installment(100000, 0, 5)
        self.assertEqual(result.installment, Decimal("0.00"))
        self.assertEqual(result.monthly_collection, Decimal("0.00"))
        self.assertEqual(result.total_commission, Decimal("5000.00"))

    def test_dividend_per_member(self):
        self.assertEqual(rules.dividend_per_member(100000, 80000, 5, 10), Decimal("1500.00"))
        self.assertEqual(rules.dividend_per_member(100000, 99000, 5, 10), Decimal("0.00"))
        self.assertEqual(rules.dividend_per_member(100000, 80000, 5, 0), Decimal("0.00"))


class BidRuleTests(unittest.TestCase):
    """Test the auction bid acceptance rule"""

    def test_first_bid_below_chit_value_is_accepted(self):
        decision = rules.evaluate_bid(90000, 100000, [])
        self.assertTrue(decision.accepted)
        self.assertEqual(decision.message, "Bid placed successfully!")

    def test_invalid_amounts(self):
        for amount in (0, -5, None, "abc", float("nan")):
            decision = rules.evaluate_bid(amount, 100000, [])
            self.assertFalse(decision.accepted, amount)
            self.assertEqual(decision.message, "Please enter a valid bid amount.")

    def test_bid_at_or_above_chit_value(self):
        decision = rules.evaluate_bid(100000, 100000, [])
        self.assertFalse(decision.accepted)
        self.assertEqual(decision.message, "Bid must be less than the total chit value of ₹1,00,000.00.")

    def test_bid_must_undercut_lowest(self):
        decision = rules.evaluate_bid(85000, 100000, [90000, 85000])
        self.assertFalse(decision.accepted)
        self.assertEqual(decision.message, "Your bid must be lower than the current lowest bid of ₹85,000.00.")

        decision = rules.evaluate_bid(84999.99, 100000, [90000, 85000])
        self.assertTrue(decision.accepted)

    def test_lowest_bid(self):
        self.assertIsNone(rules.lowest_bid([]))
        self.assertEqual(rules.lowest_bid([Decimal("90000"), 85000.5]), Decimal("85000.5"))


class EligibilityTests(unittest.TestCase):
    """Test chit scheme eligibility"""

    def test_boundaries_are_inclusive(self):
        self.assertTrue(is_eligible(21, 15000))
        self.assertTrue(is_eligible(58, 15000))
        self.assertFalse(is_eligible(20, 50000))
        self.assertFalse(is_eligible(59, 50000))
        self.assertFalse(is_eligible(30, 14999.99))

    def test_missing_values_are_not_eligible(self):
        self.assertFalse(is_eligible(None, 20000))
        self.assertFalse(is_eligible(30, None))

    def test_messages(self):
        self.assertEqual(check_eligibility(30, 20000).message, ELIGIBLE_MESSAGE)
        result = check_eligibility(65, 20000)
        self.assertFalse(result.eligible)
        self.assertEqual(result.message, NOT_ELIGIBLE_MESSAGE)


class LoanCalculatorTests(unittest.TestCase):
    """Test EMI, amortisation and status transitions"""

    def test_emi(self):
        result = calculator.calculate_emi(100000, 12, 12)
        self.assertEqual(result["emi"], Decimal("8884.88"))
        self.assertEqual(result["total_interest"], Decimal("6618.55"))
        self.assertEqual(result["total_amount"], Decimal("106618.55"))

    def test_zero_rate_spreads_principal(self):
        result = calculator.calculate_emi(12000, 0, 12)
        self.assertEqual(result["emi"], Decimal("1000.00"))
        self.assertEqual(result["total_interest"], Decimal("0.00"))

    def test_duration_must_be_positive(self):
        with self.assertRaises(ValueError):
            calculator.calculate_emi(1000, 12, 0)

    def test_schedule(self):
        schedule = calculator.repayment_schedule(100000, 12, 12, date(2024, 1, 31))
        self.assertEqual(len(schedule), 12)
        self.assertEqual(schedule[0]["due_date"], date(2024, 2, 29))
        self.assertEqual(schedule[0]["interest"], Decimal("1000.00"))
        self.assertEqual(schedule[0]["principal"], Decimal("7884.88"))
        self.assertEqual(schedule[-1]["balance"], Decimal("0.00"))
        self.assertEqual(sum(row["principal"] for row in schedule), Decimal("100000.00"))

    def test_transitions(self):
        self.assertTrue(calculator.can_transition("pending", "approved"))
        self.assertTrue(calculator.can_transition("approved", "disbursed"))
        self.assertTrue(calculator.can_transition("disbursed", "defaulted"))
        self.assertTrue(calculator.can_transition("approved", "rejected"))
        self.assertTrue(calculator.can_transition("defaulted", "completed"))
        self.assertFalse(calculator.can_transition("rejected", "approved"))
        self.assertFalse(calculator.can_transition("defaulted", "disbursed"))
        self.assertFalse(calculator.can_transition("pending", "disbursed"))
        self.assertFalse(calculator.can_transition("completed", "pending"))
        self.assertFalse(calculator.can_transition("unknown", "approved"))


class RiskAndHelperTests(unittest.TestCase):

    def test_risk_level(self):
        self.assertEqual(risk_level(750), "low")
        self.assertEqual(risk_level(700), "low")
        self.assertEqual(risk_level(650), "medium")
        self.assertEqual(risk_level(649), "high")

    def test_credit_history(self):
        self.assertEqual(credit_history(None), "Unknown")
        self.assertEqual(credit_history(720), "Good")
        self.assertEqual(credit_history(700), "Average")

    def test_qr_status(self):
        self.assertEqual(status_for(7), "assigned")
        self.assertEqual(status_for(None), "active")

    def test_format_inr(self):
        self.assertEqual(format_inr(999), "₹999.00")
        self.assertEqual(format_inr(100000), "₹1,00,000.00")
        self.assertEqual(format_inr(1234567.5), "₹12,34,567.50")

    def test_money_and_codes(self):
        self.assertEqual(to_money("10.005"), Decimal("10.01"))
        code = random_code("CUS")
        self.assertTrue(code.startswith("CUS-"))
        self.assertEqual(len(code), 10)


class SessionHelperTests(unittest.TestCase):
    """Test idle window arithmetic"""

    def test_time_remaining(self):
        self.assertEqual(time_remaining(0, 600, 1800), 1200)
        self.assertEqual(time_remaining(0, 5000, 1800), 0)
        self.assertEqual(
            time_remaining(datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 10, 10)),
            1200,
        )

    def test_expiry_and_warning(self):
        self.assertTrue(is_expired(0, 1800, 1800))
        self.assertFalse(is_expired(0, 1799, 1800))
        self.assertTrue(is_warning_due(0, 1500, 1800, 300))
        self.assertFalse(is_warning_due(0, 1499, 1800, 300))
        self.assertFalse(is_warning_due(0, 1800, 1800, 300))
