"""API tests for /api/waitlist"""

import unittest

from fastapi.testclient import TestClient

from practice_api.models import Appointment
from tests.helpers import book, clear_overrides, make_session_factory, next_monday, override_db, seed_practice

BASE = "/api/waitlist"


class WaitlistApiTestCase(unittest.TestCase):
    def setUp(self):
        self.Session = make_session_factory()
        self.db = self.Session()
        self.practice = seed_practice(self.db)
        self.client = TestClient(override_db(self.Session))

    def tearDown(self):
        self.db.close()
        clear_overrides()

    def entry(self, **overrides):
        payload = {
            "patientId": self.practice.patient_id,
            "providerId": self.practice.provider_id,
            "appointmentTypeId": self.practice.appointment_type_id,
            "preferredDate": next_monday().isoformat(),
            "preferredTimeStart": "9:00",
            "preferredTimeEnd": "09:30",
            "priority": "normal",
            "notes": "From recurring appointment - Appointment #2 had a conflict",
        }
        payload.update(overrides)
        return payload

    def create(self, **overrides):
        response = self.client.post(BASE, json=self.entry(**overrides))
        self.assertEqual(response.status_code, 200)
        return response.json()["data"]["waitlistEntry"]


class TestWaitlistApi(WaitlistApiTestCase):
    def test_create_entry(self):
        entry = self.create()

        self.assertEqual(entry["status"], "active")
        self.assertEqual(entry["priority"], "normal")
        self.assertEqual(entry["preferredTimeStart"], "09:00")
        self.assertEqual(entry["patientName"], "John Doe")
        self.assertEqual(entry["providerName"], "Maria Lopez")
        self.assertEqual(entry["appointmentTypeName"], "Follow-up")

    def test_create_requires_existing_patient(self):
        response = self.client.post(BASE, json=self.entry(patientId=999))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["message"], "Patient not found")

    def test_create_requires_appointment_type(self):
        payload = self.entry()
        del payload["appointmentTypeId"]

        response = self.client.post(BASE, json=payload)
        self.assertEqual(response.status_code, 422)

    def test_create_rejects_inverted_time_window(self):
        response = self.client.post(
            BASE, json=self.entry(preferredTimeStart="10:00", preferredTimeEnd="09:00")
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(
            response.json()["error"]["message"], "Preferred end time must be after start time"
        )

    def test_create_rejects_unknown_priority(self):
        response = self.client.post(BASE, json=self.entry(priority="asap"))
        self.assertEqual(response.status_code, 422)

    def test_list_with_filters(self):
        self.create()
        self.create(priority="urgent", patientId=self.practice.other_patient_id)

        everything = self.client.get(BASE).json()["data"]
        self.assertEqual(everything["pagination"]["total"], 2)

        urgent = self.client.get(BASE, params={"priority": "urgent"}).json()["data"]
        self.assertEqual(len(urgent["waitlistEntries"]), 1)
        self.assertEqual(urgent["waitlistEntries"][0]["patientName"], "Jane Roe")

    def test_list_rejects_unknown_status(self):
        response = self.client.get(BASE, params={"status": "pending"})
        self.assertEqual(response.status_code, 400)

    def test_status_workflow(self):
        entry_id = self.create()["id"]

        called = self.client.post(f"{BASE}/{entry_id}/called").json()["data"]["waitlistEntry"]
        self.assertEqual(called["status"], "called")
        self.assertIsNotNone(called["calledAt"])

        again = self.client.post(f"{BASE}/{entry_id}/called")
        self.assertEqual(again.status_code, 400)

        scheduled = self.client.post(f"{BASE}/{entry_id}/scheduled").json()["data"]["waitlistEntry"]
        self.assertEqual(scheduled["status"], "scheduled")
        self.assertIsNotNone(scheduled["scheduledAt"])

        self.assertEqual(self.client.post(f"{BASE}/{entry_id}/scheduled").status_code, 400)

    def test_active_entry_can_be_scheduled_directly(self):
        entry_id = self.create()["id"]

        response = self.client.post(f"{BASE}/{entry_id}/scheduled")
        self.assertEqual(response.json()["data"]["waitlistEntry"]["status"], "scheduled")

    def test_get_and_delete(self):
        entry_id = self.create()["id"]

        self.assertEqual(self.client.get(f"{BASE}/{entry_id}").status_code, 200)
        deleted = self.client.delete(f"{BASE}/{entry_id}")
        self.assertTrue(deleted.json()["success"])
        self.assertEqual(self.client.get(f"{BASE}/{entry_id}").status_code, 404)




class TestWaitlistUpdate(WaitlistApiTestCase):
    def test_update_entry(self):
        entry_id = self.create()["id"]

        response = self.client.put(
            f"{BASE}/{entry_id}",
            json={"priority": "urgent", "preferredTimeEnd": "10:00", "notes": "Mornings only"},
        )

        self.assertEqual(response.status_code, 200)
        entry = response.json()["data"]["waitlistEntry"]
        self.assertEqual(entry["priority"], "urgent")
        self.assertEqual(entry["preferredTimeStart"], "09:00")
        self.assertEqual(entry["preferredTimeEnd"], "10:00")
        self.assertEqual(entry["notes"], "Mornings only")

    def test_update_checks_window_against_stored_times(self):
        entry_id = self.create()["id"]

        response = self.client.put(f"{BASE}/{entry_id}", json={"preferredTimeEnd": "08:30"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["field"], "preferredTimeEnd")

    def test_update_unknown_provider(self):
        entry_id = self.create()["id"]

        response = self.client.put(f"{BASE}/{entry_id}", json={"providerId": 999})
        self.assertEqual(response.status_code, 404)

    def test_update_missing_entry(self):
        response = self.client.put(f"{BASE}/999", json={"priority": "urgent"})
        self.assertEqual(response.status_code, 404)


class TestWaitlistConversion(WaitlistApiTestCase):
    def slot(self, **overrides):
        payload = {
            "appointmentDate": next_monday().isoformat(),
            "startTime": "10:00",
            "endTime": "10:30",
        }
        payload.update(overrides)
        return payload

    def test_convert_books_appointment_and_closes_entry(self):
        entry_id = self.create()["id"]

        response = self.client.post(f"{BASE}/{entry_id}/convert-to-appointment", json=self.slot())

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["appointment"]["startTime"], "10:00")
        self.assertEqual(data["appointment"]["durationMinutes"], 30)
        self.assertEqual(data["appointment"]["patientId"], self.practice.patient_id)
        self.assertEqual(data["waitlistEntry"]["status"], "scheduled")
        self.assertIsNotNone(data["waitlistEntry"]["scheduledAt"])

        self.db.expire_all()
        self.assertEqual(self.db.query(Appointment).count(), 1)

    def test_convert_into_occupied_slot_is_rejected(self):
        entry_id = self.create()["id"]
        book(
            self.db,
            self.practice.provider_id,
            self.practice.other_patient_id,
            next_monday(),
            "10:15",
            "10:45",
        )

        response = self.client.post(f"{BASE}/{entry_id}/convert-to-appointment", json=self.slot())

        self.assertEqual(response.status_code, 409)
        self.assertEqual(len(response.json()["error"]["conflicts"]), 1)
        entry = self.client.get(f"{BASE}/{entry_id}").json()["data"]["waitlistEntry"]
        self.assertEqual(entry["status"], "active")
        self.db.expire_all()
        self.assertEqual(self.db.query(Appointment).count(), 1)

    def test_convert_applies_appointment_type_buffers(self):
        entry_id = self.create(appointmentTypeId=self.practice.buffered_type_id)["id"]
        book(
            self.db,
            self.practice.provider_id,
            self.practice.other_patient_id,
            next_monday(),
            "09:30",
            "09:50",
        )

        response = self.client.post(
            f"{BASE}/{entry_id}/convert-to-appointment",
            json=self.slot(startTime="10:00", endTime="11:00"),
        )
        self.assertEqual(response.status_code, 409)

    def test_scheduled_entry_cannot_be_converted(self):
        entry_id = self.create()["id"]
        self.client.post(f"{BASE}/{entry_id}/scheduled")

        response = self.client.post(f"{BASE}/{entry_id}/convert-to-appointment", json=self.slot())

        self.assertEqual(response.status_code, 400)

    def test_convert_requires_a_valid_window(self):
        entry_id = self.create()["id"]

        response = self.client.post(
            f"{BASE}/{entry_id}/convert-to-appointment",
            json=self.slot(startTime="11:00", endTime="10:00"),
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["message"], "End time must be after start time")


if __name__ == "__main__":
    unittest.main()
