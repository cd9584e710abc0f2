"""API tests for /api/recurring-appointments"""

import unittest
from datetime import timedelta

from fastapi.testclient import TestClient

from practice_api.models import Appointment, RecurringAppointment
from tests.helpers import (
    book,
    clear_overrides,
    make_session_factory,
    next_monday,
    override_db,
    seed_practice,
)

BASE = "/api/recurring-appointments"


class RecurringApiTestCase(unittest.TestCase):
    def setUp(self):
        self.Session = make_session_factory()
        self.db = self.Session()
        self.practice = seed_practice(self.db)
        self.client = TestClient(override_db(self.Session))
        self.start = next_monday()

    def tearDown(self):
        self.db.close()
        clear_overrides()

    def rule(self, **overrides):
        payload = {
            "providerId": self.practice.provider_id,
            "patientId": self.practice.patient_id,
            "appointmentTypeId": self.practice.appointment_type_id,
            "frequency": "weekly",
            "frequencyValue": 1,
            "startDate": self.start.isoformat(),
            "preferredTime": "09:00",
            "totalAppointments": 3,
        }
        payload.update(overrides)
        return payload

    def book_second_week(self, start="09:00", end="09:30", status="scheduled"):
        return book(
            self.db,
            self.practice.provider_id,
            self.practice.other_patient_id,
            self.start + timedelta(days=7),
            start,
            end,
            status=status,
            code="APT-EXIST01",
        )

    def count(self, model):
        self.db.expire_all()
        return self.db.query(model).count()


class TestPreviewEndpoint(RecurringApiTestCase):
    def test_preview_reports_conflict_on_second_instance(self):
        self.book_second_week()

        response = self.client.post(f"{BASE}/preview", json=self.rule())

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        data = body["data"]
        self.assertEqual(data["totalCount"], 3)
        self.assertEqual(data["availableCount"], 2)
        self.assertEqual(data["conflictCount"], 1)

        second = data["previewAppointments"][1]
        self.assertEqual(second["appointmentNumber"], 2)
        self.assertTrue(second["hasConflict"])
        self.assertEqual(second["conflictingAppointments"][0]["patientName"], "Jane Roe")
        self.assertEqual(second["conflictingAppointments"][0]["appointmentCode"], "APT-EXIST01")
        self.assertEqual(self.count(RecurringAppointment), 0)

    def test_preview_without_conflicts(self):
        response = self.client.post(f"{BASE}/preview", json=self.rule())

        data = response.json()["data"]
        self.assertEqual(data["conflictCount"], 0)
        self.assertEqual(
            [a["date"] for a in data["previewAppointments"]],
            [(self.start + timedelta(days=7 * i)).isoformat() for i in range(3)],
        )

    def test_cancelled_bookings_do_not_block(self):
        self.book_second_week(status="cancelled")

        data = self.client.post(f"{BASE}/preview", json=self.rule()).json()["data"]
        self.assertEqual(data["conflictCount"], 0)

    def test_other_providers_bookings_do_not_block(self):
        book(
            self.db,
            self.practice.other_provider_id,
            self.practice.other_patient_id,
            self.start,
            "09:00",
            "09:30",
        )
        data = self.client.post(f"{BASE}/preview", json=self.rule()).json()["data"]
        self.assertEqual(data["conflictCount"], 0)

    def test_appointment_type_buffers_apply(self):
        book(
            self.db,
            self.practice.provider_id,
            self.practice.other_patient_id,
            self.start,
            "10:05",
            "10:30",
        )
        data = self.client.post(
            f"{BASE}/preview",
            json=self.rule(appointmentTypeId=self.practice.buffered_type_id, totalAppointments=1),
        ).json()["data"]

        first = data["previewAppointments"][0]
        self.assertEqual(first["endTime"], "10:00")
        self.assertTrue(first["hasConflict"])

    def test_missing_end_bound_is_rejected(self):
        response = self.client.post(f"{BASE}/preview", json=self.rule(totalAppointments=None))

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["error"]["message"], "Please provide Total Appointments or End Date")

    def test_missing_provider_is_rejected(self):
        response = self.client.post(f"{BASE}/preview", json=self.rule(providerId=None))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["field"], "providerId")

    def test_malformed_time_is_rejected(self):
        response = self.client.post(f"{BASE}/preview", json=self.rule(preferredTime="25:00"))

        self.assertEqual(response.status_code, 422)
        self.assertEqual(
            response.json()["error"]["message"], "Preferred time must be in HH:mm format (24-hour)"
        )

    def test_instances_running_past_midnight_are_rejected(self):
        response = self.client.post(f"{BASE}/preview", json=self.rule(preferredTime="23:45"))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["field"], "preferredTime")

    def test_unknown_provider(self):
        response = self.client.post(f"{BASE}/preview", json=self.rule(providerId=999))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["message"], "Provider not found")


class TestCreateWithResolution(RecurringApiTestCase):
    def test_skipped_instance_is_not_created(self):
        self.book_second_week()
        payload = self.rule(appointmentOverrides=[{"appointmentNumber": 2, "skip": True}])

        response = self.client.post(f"{BASE}/with-resolution", json=payload)

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["appointmentsCreated"], 2)
        self.assertEqual(data["skippedCount"], 1)
        self.assertEqual(
            [a["appointmentNumber"] for a in data["createdAppointments"]], [1, 3]
        )
        self.assertEqual(data["recurringAppointment"]["frequency"], "weekly")
        self.assertEqual(data["recurringAppointment"]["patientName"], "John Doe")

    def test_rescheduled_instance_uses_custom_slot(self):
        self.book_second_week()
        moved_date = (self.start + timedelta(days=7)).isoformat()
        payload = self.rule(
            appointmentOverrides=[
                {
                    "appointmentNumber": 2,
                    "customDate": moved_date,
                    "customStartTime": "11:00",
                    "customEndTime": "11:45",
                }
            ]
        )

        data = self.client.post(f"{BASE}/with-resolution", json=payload).json()["data"]

        self.assertEqual(data["appointmentsCreated"], 3)
        self.assertEqual(data["skippedCount"], 0)
        second = data["createdAppointments"][1]
        self.assertEqual(second["date"], moved_date)
        self.assertEqual(second["startTime"], "11:00")
        self.assertEqual(second["endTime"], "11:45")
        self.assertEqual(second["durationMinutes"], 45)

    def test_unresolved_conflict_rejects_whole_series(self):
        self.book_second_week()

        response = self.client.post(f"{BASE}/with-resolution", json=self.rule())

        self.assertEqual(response.status_code, 409)
        error = response.json()["error"]
        self.assertEqual([c["appointmentNumber"] for c in error["conflicts"]], [2])
        self.assertEqual(self.count(RecurringAppointment), 0)
        self.assertEqual(self.count(Appointment), 1)

    def test_reschedule_into_an_occupied_slot_is_rejected(self):
        self.book_second_week()
        payload = self.rule(
            appointmentOverrides=[
                {
                    "appointmentNumber": 2,
                    "customDate": (self.start + timedelta(days=7)).isoformat(),
                    "customStartTime": "09:15",
                    "customEndTime": "09:45",
                }
            ]
        )

        response = self.client.post(f"{BASE}/with-resolution", json=payload)

        self.assertEqual(response.status_code, 409)
        self.assertTrue(response.json()["error"]["conflicts"][0]["modified"])
        self.assertEqual(self.count(RecurringAppointment), 0)

    def test_reschedule_onto_another_instance_of_the_batch_is_rejected(self):
        payload = self.rule(
            appointmentOverrides=[
                {
                    "appointmentNumber": 2,
                    "customDate": self.start.isoformat(),
                    "customStartTime": "09:15",
                    "customEndTime": "09:45",
                }
            ]
        )

        response = self.client.post(f"{BASE}/with-resolution", json=payload)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.count(Appointment), 0)

    def test_override_outside_series_is_rejected(self):
        payload = self.rule(appointmentOverrides=[{"appointmentNumber": 4, "skip": True}])

        response = self.client.post(f"{BASE}/with-resolution", json=payload)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.count(RecurringAppointment), 0)

    def test_skip_and_reschedule_together_is_rejected(self):
        payload = self.rule(
            appointmentOverrides=[
                {
                    "appointmentNumber": 2,
                    "skip": True,
                    "customDate": self.start.isoformat(),
                    "customStartTime": "11:00",
                    "customEndTime": "11:30",
                }
            ]
        )

        response = self.client.post(f"{BASE}/with-resolution", json=payload)
        self.assertEqual(response.status_code, 400)

    def test_incomplete_reschedule_is_rejected(self):
        payload = self.rule(
            appointmentOverrides=[{"appointmentNumber": 2, "customStartTime": "11:00"}]
        )

        response = self.client.post(f"{BASE}/with-resolution", json=payload)
        self.assertEqual(response.status_code, 400)

    def test_every_instance_skipped_creates_empty_series(self):
        payload = self.rule(
            totalAppointments=2,
            appointmentOverrides=[
                {"appointmentNumber": 1, "skip": True},
                {"appointmentNumber": 2, "skip": True},
            ],
        )

        data = self.client.post(f"{BASE}/with-resolution", json=payload).json()["data"]

        self.assertEqual(data["appointmentsCreated"], 0)
        self.assertEqual(data["skippedCount"], 2)
        self.assertEqual(self.count(RecurringAppointment), 1)


class TestCreate(RecurringApiTestCase):
    def test_create_without_conflicts(self):
        response = self.client.post(BASE, json=self.rule(notes="Cardiac follow-up"))

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["appointmentsCreated"], 3)
        self.assertEqual(data["recurringAppointment"]["notes"], "Cardiac follow-up")
        for appointment in data["createdAppointments"]:
            self.assertTrue(appointment["appointmentCode"].startswith("APT-"))
            self.assertEqual(appointment["status"], "scheduled")

    def test_create_with_conflict_is_rejected(self):
        self.book_second_week()

        response = self.client.post(BASE, json=self.rule())

        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.count(RecurringAppointment), 0)

    def test_stored_rule_matches_what_was_generated(self):
        response = self.client.post(BASE, json=self.rule(frequencyValue=-3, totalAppointments=500))

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["appointmentsCreated"], 100)
        self.assertEqual(data["recurringAppointment"]["frequencyValue"], 1)
        self.assertEqual(data["recurringAppointment"]["totalAppointments"], 100)

        dates = [a["date"] for a in data["createdAppointments"][:2]]
        self.assertEqual(
            dates, [self.start.isoformat(), (self.start + timedelta(days=7)).isoformat()]
        )

    def test_created_series_blocks_the_next_preview(self):
        self.client.post(BASE, json=self.rule())

        data = self.client.post(
            f"{BASE}/preview", json=self.rule(patientId=self.practice.other_patient_id)
        ).json()["data"]
        self.assertEqual(data["conflictCount"], 3)


class TestSeriesManagement(RecurringApiTestCase):
    def create_series(self, **overrides):
        response = self.client.post(BASE, json=self.rule(**overrides))
        return response.json()["data"]["recurringAppointment"]["id"]

    def test_list_and_filter(self):
        self.create_series()
        self.create_series(
            providerId=self.practice.other_provider_id, preferredTime="14:00"
        )

        everything = self.client.get(BASE).json()["data"]
        self.assertEqual(everything["pagination"]["total"], 2)

        filtered = self.client.get(
            BASE, params={"providerId": self.practice.other_provider_id}
        ).json()["data"]
        self.assertEqual(len(filtered["recurringAppointments"]), 1)
        self.assertEqual(filtered["recurringAppointments"][0]["preferredTime"], "14:00")

        paged = self.client.get(BASE, params={"limit": 1, "page": 2}).json()["data"]
        self.assertEqual(len(paged["recurringAppointments"]), 1)
        self.assertEqual(paged["pagination"]["totalPages"], 2)

    def test_get_series(self):
        series_id = self.create_series()

        data = self.client.get(f"{BASE}/{series_id}").json()["data"]
        self.assertEqual(data["recurringAppointment"]["providerName"], "Maria Lopez")
        self.assertEqual(data["recurringAppointment"]["totalAppointments"], 3)

    def test_get_missing_series(self):
        response = self.client.get(f"{BASE}/999")
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()["success"])

    def test_update_series(self):
        series_id = self.create_series()

        response = self.client.put(
            f"{BASE}/{series_id}", json={"notes": "Moved to clinic B", "isActive": False}
        )

        series = response.json()["data"]["recurringAppointment"]
        self.assertEqual(series["notes"], "Moved to clinic B")
        self.assertFalse(series["isActive"])

        inactive = self.client.get(BASE, params={"isActive": "false"}).json()["data"]
        self.assertEqual(len(inactive["recurringAppointments"]), 1)

    def test_update_rejects_end_date_before_start(self):
        series_id = self.create_series()

        response = self.client.put(
            f"{BASE}/{series_id}", json={"endDate": self.start.isoformat()}
        )
        self.assertEqual(response.status_code, 400)

    def test_linked_appointments(self):
        series_id = self.create_series()

        data = self.client.get(f"{BASE}/{series_id}/appointments").json()["data"]
        self.assertEqual(data["count"], 3)
        self.assertEqual([a["appointmentNumber"] for a in data["appointments"]], [1, 2, 3])

    def test_delete_series_removes_its_appointments(self):
        series_id = self.create_series()
        self.book_second_week(start="15:00", end="15:30")

        response = self.client.delete(f"{BASE}/{series_id}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["deletedAppointments"], 3)
        self.assertEqual(self.client.get(f"{BASE}/{series_id}").status_code, 404)
        self.assertEqual(self.count(Appointment), 1)




class TestGenerateAppointments(RecurringApiTestCase):
    def create_series(self, **overrides):
        response = self.client.post(BASE, json=self.rule(**overrides))
        return response.json()["data"]["recurringAppointment"]["id"]

    def test_generate_continues_the_series(self):
        series_id = self.create_series()

        response = self.client.post(f"{BASE}/{series_id}/generate", json={"count": 2})

        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["appointmentsCreated"], 2)
        self.assertEqual(data["recurringAppointment"]["totalAppointments"], 5)
        self.assertEqual(
            [(a["appointmentNumber"], a["date"]) for a in data["createdAppointments"]],
            [
                (4, (self.start + timedelta(days=21)).isoformat()),
                (5, (self.start + timedelta(days=28)).isoformat()),
            ],
        )

        linked = self.client.get(f"{BASE}/{series_id}/appointments").json()["data"]
        self.assertEqual([a["appointmentNumber"] for a in linked["appointments"]], [1, 2, 3, 4, 5])

    def test_generate_defaults_to_five(self):
        series_id = self.create_series(frequency="monthly")

        data = self.client.post(f"{BASE}/{series_id}/generate").json()["data"]

        self.assertEqual(data["appointmentsCreated"], 5)
        self.assertEqual(
            data["createdAppointments"][0]["date"], (self.start + timedelta(days=90)).isoformat()
        )

    def test_generate_stops_at_end_date(self):
        series_id = self.create_series(
            totalAppointments=None, endDate=(self.start + timedelta(days=14)).isoformat()
        )

        response = self.client.post(f"{BASE}/{series_id}/generate", json={"count": 2})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["field"], "endDate")
        self.assertEqual(self.count(Appointment), 3)

    def test_generate_into_a_conflict_creates_nothing(self):
        series_id = self.create_series()
        book(
            self.db,
            self.practice.provider_id,
            self.practice.other_patient_id,
            self.start + timedelta(days=28),
            "09:15",
            "09:45",
        )

        response = self.client.post(f"{BASE}/{series_id}/generate", json={"count": 2})

        self.assertEqual(response.status_code, 409)
        conflicts = response.json()["error"]["conflicts"]
        self.assertEqual([c["appointmentNumber"] for c in conflicts], [5])
        self.assertEqual(self.count(Appointment), 4)

    def test_inactive_series_cannot_generate(self):
        series_id = self.create_series()
        self.client.put(f"{BASE}/{series_id}", json={"isActive": False})

        response = self.client.post(f"{BASE}/{series_id}/generate", json={"count": 1})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json()["error"]["message"],
            "Cannot generate appointments for an inactive recurring appointment",
        )

    def test_count_is_bounded(self):
        series_id = self.create_series()

        self.assertEqual(
            self.client.post(f"{BASE}/{series_id}/generate", json={"count": 0}).status_code, 422
        )
        self.assertEqual(
            self.client.post(f"{BASE}/{series_id}/generate", json={"count": 101}).status_code, 422
        )

    def test_generate_for_missing_series(self):
        response = self.client.post(f"{BASE}/999/generate", json={"count": 1})
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
