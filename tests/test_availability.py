import unittest

from salondesk.availability import (
    DEFAULT_SLOTS, available_slots, build_slot_catalog, find_conflicts, overlaps, to_minutes,
)

DAYTIME = build_slot_catalog("09:00", "19:00")


def booking(start, duration=30, staff="Amina", date="2024-06-01", **extra):
    record = {"staff": staff, "date": date, "startTime": start, "duration": duration}
    record.update(extra)
    return record


class SlotCatalogTestCase(unittest.TestCase):
    def test_daytime_catalog_is_inclusive(self) -> None:
        self.assertEqual(DAYTIME[0], "09:00")
        self.assertEqual(DAYTIME[-1], "19:00")
        self.assertEqual(len(DAYTIME), 21)

    def test_catalog_wraps_past_midnight(self) -> None:
        self.assertEqual(list(build_slot_catalog("11:00", "02:00")), list(DEFAULT_SLOTS))

    def test_overlap_is_half_open(self) -> None:
        self.assertTrue(overlaps(0, 30, 15, 45))
        self.assertFalse(overlaps(0, 30, 30, 60))
        self.assertFalse(overlaps(30, 60, 0, 30))


class AvailableSlotsTestCase(unittest.TestCase):
    def test_single_booking_blocks_only_its_slot(self) -> None:
        slots = available_slots("Amina", "2024-06-01", [booking("10:00")], 30, DAYTIME)
        self.assertNotIn("10:00", slots)
        self.assertIn("09:30", slots)
        self.assertIn("10:30", slots)

    def test_back_to_back_bookings_are_allowed(self) -> None:
        existing = [booking("10:00", 60)]
        slots = available_slots("Amina", "2024-06-01", existing, 60, DAYTIME)
        self.assertIn("09:00", slots)
        self.assertIn("11:00", slots)
        self.assertNotIn("09:30", slots)
        self.assertNotIn("10:30", slots)

    def test_other_staff_and_dates_are_ignored(self) -> None:
        existing = [booking("10:00", staff="Hayat"), booking("10:00", date="2024-06-02")]
        slots = available_slots("Amina", "2024-06-01", existing, 30, DAYTIME)
        self.assertEqual(slots, DAYTIME)

    def test_trailing_slots_are_not_clipped(self) -> None:
        slots = available_slots("Amina", "2024-06-01", [], 120, DAYTIME)
        self.assertEqual(slots[-1], "19:00")

    def test_late_booking_blocks_slots_after_midnight(self) -> None:
        existing = [booking("23:30", 60)]
        slots = available_slots("Amina", "2024-06-01", existing, 30, DEFAULT_SLOTS)
        self.assertNotIn("23:30", slots)
        self.assertNotIn("00:00", slots)
        self.assertIn("00:30", slots)
        self.assertIn("23:00", slots)

    def test_no_returned_slot_overlaps_an_existing_booking(self) -> None:
        existing = [booking("09:15", 45), booking("12:00", 90), booking("16:45", 20)]
        for duration in (15, 30, 45, 60, 120):
            for slot in available_slots("Amina", "2024-06-01", existing, duration, DAYTIME):
                start = to_minutes(slot)
                for other in existing:
                    other_start = to_minutes(other["startTime"])
                    self.assertFalse(
                        overlaps(start, start + duration, other_start, other_start + other["duration"]),
                        f"{slot} ({duration} min) overlaps {other['startTime']}",
                    )

    def test_accepts_orm_like_objects(self) -> None:
        class Row:
            staff = "Amina"
            date = "2024-06-01"
            start_time = "10:00"
            duration = 30

        slots = available_slots("Amina", "2024-06-01", [Row()], 30, DAYTIME)
        self.assertNotIn("10:00", slots)


class FindConflictsTestCase(unittest.TestCase):
    def test_reports_overlapping_bookings(self) -> None:
        existing = [booking("10:00", 60, id=1), booking("12:00", 30, id=2)]
        conflicts = find_conflicts("Amina", "2024-06-01", "10:30", 30, existing, DAYTIME)
        self.assertEqual([c["id"] for c in conflicts], [1])

    def test_adjacent_booking_is_not_a_conflict(self) -> None:
        existing = [booking("10:00", 60, id=1)]
        self.assertEqual(find_conflicts("Amina", "2024-06-01", "11:00", 30, existing, DAYTIME), [])

    def test_ignore_id_skips_the_booking_being_moved(self) -> None:
        existing = [booking("10:00", 60, id=1)]
        self.assertEqual(find_conflicts("Amina", "2024-06-01", "10:00", 60, existing, DAYTIME, ignore_id=1), [])


if __name__ == "__main__":
    unittest.main()
