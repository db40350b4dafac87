"""
Tests for loans: creation, lifecycle, repayments and member loan requests
"""
from datetime import date, timedelta

from chitfund.user.models import Role
from tests.test_utils import APITestCase, TestDataFactory


class LoanTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.branch = TestDataFactory.create_branch()
        self.agent = TestDataFactory.create_user(Role.AGENT, self.branch)
        self.manager = TestDataFactory.create_user(Role.BRANCH_MANAGER, self.branch)
        self.customer = TestDataFactory.create_customer(self.branch)

    def test_emi_calculator(self):
        self.client.authenticate_user(self.agent)
        response = self.client.post("/loans/emi", json={"principal": 100000, "annual_rate": 12, "months": 12})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"emi": 8884.88, "total_interest": 6618.55, "total_amount": 106618.55})

    def test_create_loan(self):
        self.client.authenticate_user(self.agent)
        response = self.client.post("/loans/", json={
            "customer_id": self.customer.id, "amount": 50000, "interest_rate": 12, "duration": 12,
        })
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertEqual(data["status"], "pending")
        self.assertEqual(data["branch_id"], self.branch.id)
        self.assertIn("loan.create", TestDataFactory.audit_actions())

    def test_create_loan_requires_active_customer(self):
        pending = TestDataFactory.create_customer(self.branch, status="pending", kyc_status="pending")
        self.client.authenticate_user(self.agent)
        response = self.client.post("/loans/", json={
            "customer_id": pending.id, "amount": 50000, "interest_rate": 12, "duration": 12,
        })
        self.assertEqual(response.status_code, 400)

    def test_create_loan_for_other_branch(self):
        outsider = TestDataFactory.create_customer(TestDataFactory.create_branch())
        self.client.authenticate_user(self.agent)
        response = self.client.post("/loans/", json={
            "customer_id": outsider.id, "amount": 50000, "interest_rate": 12, "duration": 12,
        })
        self.assertEqual(response.status_code, 404)

    def test_lifecycle(self):
        loan = TestDataFactory.create_loan(self.customer)

        self.client.authenticate_user(self.agent)
        response = self.client.patch(f"/loans/{loan.id}/status", json={"status": "approved"})
        self.assertEqual(response.status_code, 403)
        self.client.logout()

        self.client.authenticate_user(self.manager)
        response = self.client.patch(f"/loans/{loan.id}/status", json={"status": "disbursed"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Cannot change loan status from pending to disbursed")

        response = self.client.patch(f"/loans/{loan.id}/status", json={"status": "approved"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["approved_by"], self.manager.id)

        response = self.client.patch(f"/loans/{loan.id}/status", json={"status": "disbursed"})
        self.assertEqual(response.json()["status"], "disbursed")
        self.assertIsNotNone(response.json()["disbursed_at"])

        actions = TestDataFactory.audit_actions()
        self.assertIn("loan.approved", actions)
        self.assertIn("loan.disbursed", actions)

    def test_repayments_complete_the_loan(self):
        loan = TestDataFactory.create_loan(self.customer, amount=12000, interest_rate=0, duration=12,
                                           status="disbursed")
        self.client.authenticate_user(self.agent)
        url = f"/loans/{loan.id}/repayments"

        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        self.assertEqual(self.client.post(url, json={"amount": 1000, "payment_date": tomorrow}).status_code, 400)

        self.assertEqual(self.client.post(url, json={"amount": 1000}).status_code, 201)
        detail = self.client.get(f"/loans/{loan.id}").json()
        self.assertEqual(detail["status"], "disbursed")
        self.assertEqual(detail["total_repaid"], 1000.0)
        self.assertEqual(detail["outstanding"], 11000.0)

        self.assertEqual(self.client.post(url, json={"amount": 11000, "payment_mode": "upi"}).status_code, 201)
        detail = self.client.get(f"/loans/{loan.id}").json()
        self.assertEqual(detail["status"], "completed")
        self.assertEqual(detail["outstanding"], 0.0)
        self.assertEqual(len(self.client.get(url).json()), 2)

        self.assertEqual(self.client.post(url, json={"amount": 10}).status_code, 400)

    def test_approved_loan_can_still_be_rejected(self):
        loan = TestDataFactory.create_loan(self.customer, status="approved")
        self.client.authenticate_user(self.manager)
        response = self.client.patch(f"/loans/{loan.id}/status", json={"status": "rejected"})
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["status"], "rejected")

        response = self.client.patch(f"/loans/{loan.id}/status", json={"status": "approved"})
        self.assertEqual(response.status_code, 400)

    def test_repaying_a_defaulted_loan_completes_it(self):
        loan = TestDataFactory.create_loan(self.customer, amount=12000, interest_rate=0, duration=12,
                                           status="defaulted")
        self.client.authenticate_user(self.agent)
        self.assertEqual(self.client.post(f"/loans/{loan.id}/repayments", json={"amount": 12000}).status_code, 201)
        self.assertEqual(self.client.get(f"/loans/{loan.id}").json()["status"], "completed")

    def test_pending_loan_rejects_repayment(self):
        loan = TestDataFactory.create_loan(self.customer)
        self.client.authenticate_user(self.agent)
        response = self.client.post(f"/loans/{loan.id}/repayments", json={"amount": 1000})
        self.assertEqual(response.status_code, 400)

    def test_detail_schedule(self):
        loan = TestDataFactory.create_loan(self.customer, amount=100000, interest_rate=12, duration=12)
        self.client.authenticate_user(self.agent)
        detail = self.client.get(f"/loans/{loan.id}").json()
        self.assertEqual(detail["emi"], 8884.88)
        self.assertEqual(len(detail["schedule"]), 12)
        self.assertEqual(detail["schedule"][0]["interest"], 1000.0)
        self.assertEqual(detail["schedule"][-1]["balance"], 0.0)

    def test_list_filters(self):
        TestDataFactory.create_loan(self.customer, status="pending")
        TestDataFactory.create_loan(self.customer, status="disbursed")
        TestDataFactory.create_loan(TestDataFactory.create_customer(TestDataFactory.create_branch()))

        self.client.authenticate_user(self.agent)
        self.assertEqual(len(self.client.get("/loans/").json()), 2)
        response = self.client.get("/loans/", params={"status": "disbursed"})
        self.assertEqual([loan["status"] for loan in response.json()], ["disbursed"])


class LoanRequestTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.branch = TestDataFactory.create_branch()
        self.login = TestDataFactory.create_user(Role.CUSTOMER)
        self.customer = TestDataFactory.create_customer(self.branch, user=self.login)
        self.group = TestDataFactory.create_group(self.branch)
        TestDataFactory.add_member(self.group, self.customer)

    def make_eligible(self):
        TestDataFactory.create_risk_assessment(self.customer, 720)
        for cycle in (1, 2, 3):
            TestDataFactory.create_contribution(self.group, self.customer, cycle_number=cycle)
        TestDataFactory.create_auction(self.group, status="completed")

    def request(self, group=None):
        return self.client.post("/loans/request", json={
            "chit_group_id": (group or self.group).id, "amount": 20000,
        })

    def test_not_eligible(self):
        TestDataFactory.create_risk_assessment(self.customer, 600)
        self.client.authenticate_user(self.login)
        response = self.request()
        self.assertEqual(response.status_code, 400)
        detail = response.json()["detail"]
        self.assertEqual(detail["message"], "You are not eligible for a loan at this time")
        self.assertFalse(detail["is_eligible"])
        self.assertEqual(detail["details"]["checks"], {
            "credit_score": False, "savings_history": False, "group_performance": False,
        })
        self.assertEqual(detail["details"]["credit_history"], "Average")

    def test_eligible_member_gets_pending_loan(self):
        self.make_eligible()
        self.client.authenticate_user(self.login)
        response = self.request()
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["status"], "pending")
        self.assertEqual(response.json()["customer_id"], self.customer.id)

    def test_must_be_member(self):
        other_group = TestDataFactory.create_group(self.branch)
        self.client.authenticate_user(self.login)
        self.assertEqual(self.request(other_group).status_code, 400)

    def test_staff_cannot_use_member_request(self):
        agent = TestDataFactory.create_user(Role.AGENT, self.branch)
        self.client.authenticate_user(agent)
        self.assertEqual(self.request().status_code, 403)

    def test_staff_eligibility_check(self):
        self.make_eligible()
        agent = TestDataFactory.create_user(Role.AGENT, self.branch)
        self.client.authenticate_user(agent)
        response = self.client.get("/loans/eligibility", params={
            "customer_id": self.customer.id, "chit_group_id": self.group.id,
        })
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["is_eligible"])
        self.assertEqual(data["details"]["payments_made"], 3)
        self.assertEqual(data["details"]["credit_history"], "Good")
