from rest_framework.test import APIClient
from django.test import TestCase

from accounts.authz import actor_for_company
from accounts.commands import create_company, register_user
from events.models import BusinessEvent
from events.types import EventTypes
from sales import commands as sales


class TestEventStoreApi(TestCase):
    def setUp(self):
        self.user = register_user("u1@test.com", "pass12345").data
        self.company = create_company(self.user, "C1").data["company"]
        self.other = create_company(
            register_user("u2@test.com", "pass12345").data, "C2",
        ).data["company"]
        self.user.refresh_from_db()

        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

        actor = actor_for_company(self.user, self.company)
        self.customer = sales.create_customer(actor, code="C1", name="Globex").data

    def test_list_is_scoped_to_active_company(self):
        r = self.client.get("/api/events/")
        self.assertEqual(r.status_code, 200)
        ids = {row["id"] for row in r.data}
        self.assertTrue(ids)
        foreign = {str(pk) for pk in BusinessEvent.objects.filter(company=self.other).values_list("id", flat=True)}
        self.assertFalse(ids & foreign)

    def test_filter_by_event_type(self):
        r = self.client.get("/api/events/", {"event_type": EventTypes.CUSTOMER_CREATED})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(len(r.data), 1)
        self.assertEqual(r.data[0]["event_type"], EventTypes.CUSTOMER_CREATED)

    def test_aggregate_history(self):
        r = self.client.get(f"/api/events/aggregate/Customer/{self.customer.public_id}/")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["event_count"], 1)
        self.assertEqual(r.data["events"][0]["sequence"], 1)

    def test_unknown_aggregate(self):
        r = self.client.get("/api/events/aggregate/Customer/does-not-exist/")
        self.assertEqual(r.status_code, 404)

    def test_foreign_event_detail_is_hidden(self):
        foreign = BusinessEvent.objects.filter(company=self.other).first()
        r = self.client.get(f"/api/events/{foreign.id}/")
        self.assertEqual(r.status_code, 404)

    def test_bookmarks_listed(self):
        r = self.client.get("/api/events/bookmarks/")
        self.assertEqual(r.status_code, 200)
        names = {row["consumer_name"] for row in r.data}
        self.assertIn("sales_read_model", names)
