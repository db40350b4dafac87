"""
Tests for staff administration: users, branches, QR codes, notifications,
audit trail, risk assessments, reports and the health check
"""
from datetime import date, datetime

from chitfund.user.models import Role
from restapi.endpoints.auth import ACCOUNT_FROZEN
from tests.test_utils import APITestCase, AuthenticatedClient, TestDataFactory


class UserManagementTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.branch = TestDataFactory.create_branch()
        self.admin = TestDataFactory.create_user(Role.SUPER_ADMIN)
        self.client.authenticate_user(self.admin)

    def test_create_user(self):
        payload = {
            "name": "New Agent",
            "email": "new.agent@chitfund.in",
            "password": "agentpass1",
            "role": "agent",
            "branch_id": self.branch.id,
        }
        response = self.client.post("/users/", json=payload)
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertEqual(data["role"], "agent")
        self.assertEqual(data["status"], "active")
        self.assertFalse(data["is_frozen"])
        self.assertNotIn("password", data)

        self.assertEqual(self.client.post("/users/", json=payload).status_code, 409)

    def test_branch_manager_sees_own_branch(self):
        manager = TestDataFactory.create_user(Role.BRANCH_MANAGER, self.branch)
        own = TestDataFactory.create_user(Role.AGENT, self.branch)
        other = TestDataFactory.create_user(Role.AGENT, TestDataFactory.create_branch())

        self.client.logout()
        self.client.authenticate_user(manager)
        ids = {u["id"] for u in self.client.get("/users/").json()}
        self.assertEqual(ids, {manager.id, own.id})
        self.assertEqual(self.client.get(f"/users/{other.id}").status_code, 404)
        self.assertEqual(self.client.post("/users/", json={
            "name": "Sneaky", "email": "sneaky@chitfund.in", "password": "sneakypass1",
        }).status_code, 403)

    def test_filter_by_role(self):
        TestDataFactory.create_user(Role.AGENT, self.branch)
        response = self.client.get("/users/", params={"role": "agent"})
        self.assertEqual([u["role"] for u in response.json()], ["agent"])

    def test_update_and_deactivate(self):
        agent = TestDataFactory.create_user(Role.AGENT, self.branch)
        response = self.client.put(f"/users/{agent.id}", json={"role": "branch_manager"})
        self.assertEqual(response.json()["role"], "branch_manager")

        self.assertEqual(self.client.delete(f"/users/{self.admin.id}").status_code, 400)
        response = self.client.delete(f"/users/{agent.id}")
        self.assertEqual(response.json()["message"], "User deactivated successfully")
        self.assertEqual(self.client.get(f"/users/{agent.id}").json()["status"], "inactive")
        self.assertEqual(self.client.delete("/users/9999").status_code, 404)

    def test_freeze_ends_open_sessions(self):
        agent = TestDataFactory.create_user(Role.AGENT, self.branch)
        agent_client = AuthenticatedClient()
        agent_client.authenticate_user(agent)
        self.assertEqual(agent_client.get("/auth/me").status_code, 200)

        self.assertEqual(self.client.post(f"/users/{self.admin.id}/freeze", json={}).status_code, 400)
        response = self.client.post(f"/users/{agent.id}/freeze", json={"reason": "Cash mismatch"})
        self.assertTrue(response.json()["is_frozen"])

        response = agent_client.get("/auth/me")
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"], ACCOUNT_FROZEN)

        self.client.post(f"/users/{agent.id}/unfreeze", json={})
        agent_client.authenticate_user(agent)
        self.assertEqual(agent_client.get("/auth/me").status_code, 200)
        agent_client.close()

        logs = self.client.get("/users/freeze-logs", params={"user_id": agent.id}).json()
        self.assertEqual([log["action"] for log in logs], ["unfreeze", "freeze"])
        self.assertEqual(logs[1]["reason"], "Cash mismatch")
        self.assertEqual(logs[1]["frozen_by"], self.admin.id)


class BranchTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.admin = TestDataFactory.create_user(Role.SUPER_ADMIN)
        self.client.authenticate_user(self.admin)

    def test_create_and_update(self):
        response = self.client.post("/branches/", json={"name": "Guntur", "code": "gnt01"})
        self.assertEqual(response.status_code, 201, response.text)
        branch = response.json()
        self.assertEqual(branch["code"], "GNT01")
        self.assertEqual(branch["status"], "active")

        response = self.client.post("/branches/", json={"name": "Guntur Two", "code": "GNT01"})
        self.assertEqual(response.status_code, 409)

        response = self.client.put(f"/branches/{branch['id']}", json={"status": "inactive"})
        self.assertEqual(response.json()["status"], "inactive")
        response = self.client.get("/branches/", params={"status": "active"})
        self.assertEqual(response.json(), [])

    def test_assign_manager(self):
        branch = TestDataFactory.create_branch()
        agent = TestDataFactory.create_user(Role.AGENT)
        customer = TestDataFactory.create_user(Role.CUSTOMER)

        url = f"/branches/{branch.id}/manager"
        self.assertEqual(self.client.post(url, json={"manager_id": customer.id}).status_code, 400)
        self.assertEqual(self.client.post(url, json={"manager_id": 9999}).status_code, 404)

        response = self.client.post(url, json={"manager_id": agent.id})
        self.assertEqual(response.json()["manager_id"], agent.id)
        user = self.client.get(f"/users/{agent.id}").json()
        self.assertEqual(user["role"], "branch_manager")
        self.assertEqual(user["branch_id"], branch.id)

    def test_agents_cannot_create_branches(self):
        agent = TestDataFactory.create_user(Role.AGENT, TestDataFactory.create_branch())
        self.client.logout()
        self.client.authenticate_user(agent)
        self.assertEqual(self.client.post("/branches/", json={"name": "X Branch", "code": "XB"}).status_code, 403)
        self.assertEqual(len(self.client.get("/branches/").json()), 1)


class QRCodeTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.branch = TestDataFactory.create_branch()
        self.manager = TestDataFactory.create_user(Role.BRANCH_MANAGER, self.branch)
        self.agent = TestDataFactory.create_user(Role.AGENT, self.branch)
        self.client.authenticate_user(self.manager)

    def test_status_follows_assignment(self):
        response = self.client.post("/qrcodes/", json={"assigned_to": self.agent.id})
        self.assertEqual(response.status_code, 201, response.text)
        qr = response.json()
        self.assertEqual(qr["status"], "assigned")
        self.assertTrue(qr["code"].startswith("QR-"))

        response = self.client.put(f"/qrcodes/{qr['id']}/assign", json={"assigned_to": None})
        self.assertEqual(response.json()["status"], "active")

        response = self.client.post(f"/qrcodes/{qr['id']}/deactivate")
        self.assertEqual(response.json()["status"], "inactive")
        response = self.client.put(f"/qrcodes/{qr['id']}/assign", json={"assigned_to": self.agent.id})
        self.assertEqual(response.status_code, 400)

    def test_only_agents_of_the_branch(self):
        other_agent = TestDataFactory.create_user(Role.AGENT, TestDataFactory.create_branch())
        self.assertEqual(self.client.post("/qrcodes/", json={"assigned_to": self.manager.id}).status_code, 400)
        self.assertEqual(self.client.post("/qrcodes/", json={"assigned_to": other_agent.id}).status_code, 400)

    def test_list_by_status(self):
        self.client.post("/qrcodes/", json={})
        self.client.post("/qrcodes/", json={"assigned_to": self.agent.id})
        response = self.client.get("/qrcodes/", params={"status": "assigned"})
        self.assertEqual([qr["assigned_to"] for qr in response.json()], [self.agent.id])
        self.assertEqual(len(self.client.get("/qrcodes/").json()), 2)


class NotificationTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.branch = TestDataFactory.create_branch()
        self.manager = TestDataFactory.create_user(Role.BRANCH_MANAGER, self.branch)
        self.agent = TestDataFactory.create_user(Role.AGENT, self.branch)
        self.outsider = TestDataFactory.create_user(Role.AGENT, TestDataFactory.create_branch())

    def test_send_to_branch_role(self):
        self.client.authenticate_user(self.manager)
        response = self.client.post("/notifications/send", json={
            "title": "Collection day", "message": "Collect installments today", "role": "agent",
        })
        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["message"], "Notification sent to 1 user(s)")

        response = self.client.post("/notifications/send", json={
            "title": "Nobody", "message": "No one", "role": "department_head",
        })
        self.assertEqual(response.status_code, 400)

        self.client.logout()
        self.client.authenticate_user(self.outsider)
        self.assertEqual(self.client.get("/notifications/unread-count").json(), {"unread": 0})

    def test_read_and_read_all(self):
        self.client.authenticate_user(self.manager)
        for title in ("First", "Second"):
            self.client.post("/notifications/send", json={
                "title": title, "message": "Hello", "user_ids": [self.agent.id],
            })
        self.client.logout()

        self.client.authenticate_user(self.agent)
        notifications = self.client.get("/notifications/").json()
        self.assertEqual([n["title"] for n in notifications], ["Second", "First"])
        self.assertEqual(self.client.get("/notifications/unread-count").json(), {"unread": 2})

        response = self.client.post(f"/notifications/{notifications[0]['id']}/read")
        self.assertTrue(response.json()["read"])
        unread = self.client.get("/notifications/", params={"unread_only": True}).json()
        self.assertEqual([n["title"] for n in unread], ["First"])

        self.client.post("/notifications/read-all")
        self.assertEqual(self.client.get("/notifications/unread-count").json(), {"unread": 0})
        self.assertEqual(self.client.post("/notifications/9999/read").status_code, 404)

    def test_agents_cannot_send(self):
        self.client.authenticate_user(self.agent)
        response = self.client.post("/notifications/send", json={"title": "Hi", "message": "Hi"})
        self.assertEqual(response.status_code, 403)


class AuditLogTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.branch = TestDataFactory.create_branch()
        self.admin = TestDataFactory.create_user(Role.SUPER_ADMIN)
        self.manager = TestDataFactory.create_user(Role.BRANCH_MANAGER, self.branch)
        self.agent = TestDataFactory.create_user(Role.AGENT, self.branch)
        self.outsider = TestDataFactory.create_user(Role.AGENT, TestDataFactory.create_branch())

    def post_entry(self, user, action):
        self.client.authenticate_user(user)
        response = self.client.post("/api/audit-log", json={"action": action, "details": {"screen": "dashboard"}})
        self.client.logout()
        return response

    def test_record_client_action(self):
        response = self.post_entry(self.agent, "VIEW_DASHBOARD")
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()
        self.assertEqual(data["actor_id"], self.agent.id)
        self.assertEqual(data["actor_role"], "agent")
        self.assertEqual(data["details"], {"screen": "dashboard"})

    def test_branch_manager_sees_own_branch_only(self):
        self.post_entry(self.agent, "VIEW_DASHBOARD")
        self.post_entry(self.outsider, "VIEW_DASHBOARD")

        self.client.authenticate_user(self.manager)
        entries = self.client.get("/api/audit-log", params={"action": "VIEW_DASHBOARD"}).json()
        self.assertEqual([e["actor_id"] for e in entries], [self.agent.id])
        self.client.logout()

        self.client.authenticate_user(self.admin)
        entries = self.client.get("/api/audit-log", params={"action": "VIEW_DASHBOARD"}).json()
        self.assertEqual({e["actor_id"] for e in entries}, {self.agent.id, self.outsider.id})

        entries = self.client.get("/api/audit-log", params={"actor_id": self.outsider.id}).json()
        self.assertTrue(entries)
        self.assertTrue(all(e["actor_id"] == self.outsider.id for e in entries))

    def test_agents_cannot_read(self):
        self.client.authenticate_user(self.agent)
        self.assertEqual(self.client.get("/api/audit-log").status_code, 403)


class RiskTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.branch = TestDataFactory.create_branch()
        self.manager = TestDataFactory.create_user(Role.BRANCH_MANAGER, self.branch)
        self.customer = TestDataFactory.create_customer(self.branch)
        self.client.authenticate_user(self.manager)

    def test_assessment_levels(self):
        url = f"/risk/customers/{self.customer.id}/latest"
        self.assertEqual(self.client.get(url).status_code, 404)

        response = self.client.post("/risk/assessments", json={"customer_id": self.customer.id, "score": 640})
        self.assertEqual(response.status_code, 201, response.text)
        self.assertEqual(response.json()["level"], "high")

        self.client.post("/risk/assessments", json={"customer_id": self.customer.id, "score": 710})
        self.assertEqual(self.client.get(url).json()["score"], 710)
        self.assertEqual(len(self.client.get(f"/risk/customers/{self.customer.id}").json()), 2)

    def test_score_range(self):
        response = self.client.post("/risk/assessments", json={"customer_id": self.customer.id, "score": 100})
        self.assertEqual(response.status_code, 422)


class ReportTests(APITestCase):

    def setUp(self):
        super().setUp()
        self.branch = TestDataFactory.create_branch()
        self.other_branch = TestDataFactory.create_branch()
        self.manager = TestDataFactory.create_user(Role.BRANCH_MANAGER, self.branch)
        self.admin = TestDataFactory.create_user(Role.SUPER_ADMIN)

        customer = TestDataFactory.create_customer(self.branch)
        TestDataFactory.create_customer(self.branch, status="pending", kyc_status="pending")
        group = TestDataFactory.create_group(self.branch)
        TestDataFactory.add_member(group, customer)
        TestDataFactory.create_contribution(group, customer, amount=10000, payment_date=date(2024, 3, 5))
        TestDataFactory.create_contribution(group, customer, cycle_number=2, amount=10000,
                                            payment_date=date(2023, 12, 5))
        TestDataFactory.create_loan(customer, amount=30000, status="disbursed",
                                    disbursed_at=datetime(2024, 3, 10))
        TestDataFactory.create_loan(customer, amount=10000, status="disbursed",
                                    disbursed_at=datetime(2024, 6, 1))
        TestDataFactory.create_loan(customer, amount=5000)

        other = TestDataFactory.create_customer(self.other_branch)
        TestDataFactory.create_loan(other, amount=70000, status="disbursed", disbursed_at=datetime(2024, 3, 1))

    def test_dashboard(self):
        self.client.authenticate_user(self.manager)
        data = self.client.get("/reports/dashboard").json()
        self.assertEqual(data["branch_id"], self.branch.id)
        self.assertEqual(data["total_customers"], 2)
        self.assertEqual(data["active_customers"], 1)
        self.assertEqual(data["pending_kyc"], 1)
        self.assertEqual(data["active_groups"], 1)
        self.assertEqual(data["loans_by_status"], {"disbursed": 2, "pending": 1})
        self.assertEqual(data["disbursed_amount"], 40000.0)
        self.assertEqual(data["contributions_collected"], 20000.0)

    def test_head_office_dashboard_covers_all_branches(self):
        self.client.authenticate_user(self.admin)
        data = self.client.get("/reports/dashboard").json()
        self.assertIsNone(data["branch_id"])
        self.assertEqual(data["total_customers"], 3)
        self.assertEqual(data["disbursed_amount"], 110000.0)

    def test_year_summary(self):
        self.client.authenticate_user(self.manager)
        response = self.client.get("/reports/year-summary", params={"year": 2024})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["total_loans_disbursed"], 2)
        self.assertEqual(data["total_disbursed_amount"], 40000.0)
        self.assertEqual(data["total_contributions"], 1)
        self.assertEqual(len(data["monthly_summaries"]), 12)

        march = data["monthly_summaries"][2]
        self.assertEqual(march["month"], 3)
        self.assertEqual(march["num_loans_disbursed"], 1)
        self.assertEqual(march["disbursed_percentage_of_year"], 75.0)
        self.assertEqual(march["collected_percentage_of_year"], 100.0)
        self.assertEqual(data["monthly_summaries"][0]["disbursed_percentage_of_year"], 0)

    def test_year_range(self):
        self.client.authenticate_user(self.manager)
        self.assertEqual(self.client.get("/reports/year-summary", params={"year": 1999}).status_code, 422)


class HealthCheckTests(APITestCase):

    def test_health_check(self):
        response = self.client.get("/health_check/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "service_name": "Chit Fund Admin API",
            "status": "healthy",
            "database": "ok",
        })
