"""End-to-end tests for a planning cycle."""

import pytest

from pitch_planner.adapters.store import InMemoryBookingStore
from pitch_planner.errors import Collision, FeedUnavailable, NoLocalTeam, PitchPlannerError
from pitch_planner.models import BookingDraft, ExternalTeam, Pitch
from pitch_planner.pipeline import Planner, booking_window, export_ics, plan_fixtures, report_rows

from conftest import SCENARIO_FEED, booking, utc

MIXED_FEED = "\n".join(
    [
        "BEGIN:VCALENDAR",
        "BEGIN:VEVENT",
        "UID:home-1",
        "SUMMARY:FC Stern - SV Gegner, Kreisliga",
        "DTSTART:20260222T140000Z",
        "DTEND:20260222T160000Z",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "UID:away-1",
        "SUMMARY:TSV Nord - FC Stern, Kreisliga",
        "DTSTART:20260301T100000Z",
        "DTEND:20260301T120000Z",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "UID:unknown-1",
        "SUMMARY:Spieltag 5",
        "LOCATION:Sportpark Nord",
        "DTSTART:20260308T100000Z",
        "DTEND:20260308T120000Z",
        "END:VEVENT",
        "BEGIN:VEVENT",
        "UID:broken",
        "SUMMARY:FC Stern - SV Kaputt",
        "DTSTART:20260315T100000Z",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
)


def make_planner(store, pitches, local_teams, feed=SCENARIO_FEED, **kwargs):
    return Planner(store=store, pitches=pitches, local_teams=local_teams, fetch=lambda url: feed, **kwargs)


class TestScenarios:
    def test_home_fixture_all_free_pitches(self, store, pitches, local_teams, club):
        team = ExternalTeam(id="t", club_id="stern", name="FC Stern U11", age_u=11, ics_url="https://service.bfv.de/x")
        planner = make_planner(store, pitches, local_teams)
        plan = planner.load(club, team)
        (item,) = plan.fixtures
        assert item.fixture.home_away == "home"
        assert [p.id for p in item.available] == [p.id for p in pitches]
        assert item.default_pitch_id == "gf-links"
        assert item.can_book

    def test_only_centre_pitch_is_booked(self, local_teams, club, team_u16):
        inventory = [Pitch(id="p1", name="Platz Mitte", type="GROSSFELD")]
        store = InMemoryBookingStore([booking("train", "p1", utc(2026, 2, 22, 13), utc(2026, 2, 22, 15))])
        plan = make_planner(store, inventory, local_teams).load(club, team_u16)
        (item,) = plan.fixtures
        assert item.available == []
        assert item.default_pitch_id is None
        assert not item.can_book

    def test_book_locate_undo(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams)
        plan = planner.load(club, team_u16)
        booking_id = planner.book(plan, "abc123", is_admin=True, created_by="admin-1")

        assert planner.reconciler.locate_booking("abc123") == booking_id
        (row,) = store.all()
        assert row.pitch_id == "gf-mitte"
        assert row.team_id == "t-u16"
        assert "[BFV_UID:abc123]" in row.note

        reloaded = planner.load(club, team_u16)
        (item,) = reloaded.fixtures
        assert item.booking_id == booking_id
        assert item.default_pitch_id == "gf-mitte"
        assert not item.can_book

        planner.undo(reloaded, "abc123", is_admin=True)
        assert planner.reconciler.locate_booking("abc123") is None

    def test_unrecognised_summary_is_unknown(self, store, pitches, local_teams, club, team_u16):
        feed = SCENARIO_FEED.replace("FC Stern - SV Gegner, Kreisliga", "Spieltag 5").replace(
            "Sportpark Stern, Platz 1", "Sportpark Gegner"
        )
        plan = make_planner(store, pitches, local_teams, feed=feed).load(club, team_u16)
        (item,) = plan.fixtures
        assert item.fixture.home_away == "unknown"


class TestPlanner:
    def test_home_only_filter(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams, feed=MIXED_FEED)
        assert [p.fixture.uid for p in planner.load(club, team_u16).fixtures] == ["home-1", "unknown-1"]
        assert [p.fixture.uid for p in planner.load(club, team_u16, home_only=False).fixtures] == [
            "home-1",
            "away-1",
            "unknown-1",
        ]

    def test_strict_home_filter(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams, feed=MIXED_FEED, include_unknown=False)
        assert [p.fixture.uid for p in planner.load(club, team_u16).fixtures] == ["home-1"]

    def test_window_spans_filtered_fixtures(self, store, pitches, local_teams, club, team_u16):
        plan = make_planner(store, pitches, local_teams, feed=MIXED_FEED).load(club, team_u16)
        assert plan.window_start == utc(2026, 2, 22, 14)
        assert plan.window_end == utc(2026, 3, 8, 12)

    def test_disabled(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams, enabled=False)
        with pytest.raises(PitchPlannerError):
            planner.load(club, team_u16)

    def test_missing_feed_url(self, store, pitches, local_teams, club):
        team = ExternalTeam(id="t", club_id="stern", name="FC Stern U9", age_u=9)
        with pytest.raises(PitchPlannerError):
            make_planner(store, pitches, local_teams).load(club, team)

    def test_feed_failure_propagates(self, store, pitches, local_teams, club, team_u16):
        def failing(url):
            raise FeedUnavailable("feed fetch failed (503)", status_code=503)

        planner = Planner(store=store, pitches=pitches, local_teams=local_teams, fetch=failing)
        with pytest.raises(FeedUnavailable):
            planner.load(club, team_u16)

    def test_book_requires_admin(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams)
        plan = planner.load(club, team_u16)
        with pytest.raises(PitchPlannerError):
            planner.book(plan, "abc123")
        assert store.all() == []

    def test_book_unknown_uid(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams)
        plan = planner.load(club, team_u16)
        with pytest.raises(PitchPlannerError):
            planner.book(plan, "nope", is_admin=True)

    def test_book_no_local_team(self, store, pitches, club, team_u16):
        planner = make_planner(store, pitches, [])
        plan = planner.load(club, team_u16)
        with pytest.raises(NoLocalTeam):
            planner.book(plan, "abc123", is_admin=True)

    def test_book_on_taken_pitch_collides(self, pitches, local_teams, club, team_u16):
        store = InMemoryBookingStore()
        planner = make_planner(store, pitches, local_teams)
        plan = planner.load(club, team_u16)
        store.insert(BookingDraft(pitch_id="gf-mitte", start_at=utc(2026, 2, 22, 15), end_at=utc(2026, 2, 22, 17)))
        with pytest.raises(Collision):
            planner.book(plan, "abc123", is_admin=True)


class TestHelpers:
    def test_empty_window_defaults_to_next_30_days(self):
        now = utc(2026, 1, 1)
        assert booking_window([], now) == (now, utc(2026, 1, 31))

    def test_plan_fixtures_prefers_booked_pitch(self, pitches, fixture_abc):
        rows = [booking("b1", "kp-1", fixture_abc.start, fixture_abc.end, note="[BFV] x\n[BFV_UID:abc123]")]
        (item,) = plan_fixtures([fixture_abc], None, pitches, rows)
        assert item.booking_id == "b1"
        assert item.booked_pitch_id == "kp-1"
        assert item.default_pitch_id == "kp-1"
        assert "kp-1" not in [p.id for p in item.available]

    def test_report_and_export(self, tmp_path, store, pitches, local_teams, club, team_u16):
        plan = make_planner(store, pitches, local_teams).load(club, team_u16)
        (row,) = report_rows(plan, pitches, "Europe/Berlin")
        assert row["date"] == "22.02.2026"
        assert (row["from"], row["to"]) == ("15:00", "17:00")
        assert row["home"] == "Ja"
        assert row["free_pitches"] == ["Platz Mitte", "Großfeld Rechts"]
        assert row["default_pitch"] == "Platz Mitte"
        assert row["booked_pitch"] is None

        path = tmp_path / "plan.ics"
        export_ics(plan, path, pitches)
        text = path.read_bytes().decode("utf-8")
        assert "UID:abc123" in text
        assert "20260222T140000Z" in text
        assert "LOCATION:Platz Mitte" in text


class TestBookPitchChoice:
    def test_pitch_outside_age_allow_list_rejected(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams)
        plan = planner.load(club, team_u16)
        with pytest.raises(PitchPlannerError):
            planner.book(plan, "abc123", pitch_id="kp-1", is_admin=True)
        with pytest.raises(PitchPlannerError):
            planner.book(plan, "abc123", pitch_id="no-such-pitch", is_admin=True)
        assert store.all() == []

    def test_explicit_free_pitch_accepted(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams)
        plan = planner.load(club, team_u16)
        planner.book(plan, "abc123", pitch_id="gf-rechts", is_admin=True)
        (row,) = store.all()
        assert row.pitch_id == "gf-rechts"

    def test_booked_pitch_accepted_on_rebook(self, store, pitches, local_teams, club, team_u16):
        planner = make_planner(store, pitches, local_teams)
        booking_id = planner.book(planner.load(club, team_u16), "abc123", is_admin=True)
        reloaded = planner.load(club, team_u16)
        assert planner.book(reloaded, "abc123", pitch_id="gf-mitte", is_admin=True) == booking_id

    def test_no_local_team_message_names_team(self, store, pitches, club, team_u16):
        planner = make_planner(store, pitches, [])
        plan = planner.load(club, team_u16)
        with pytest.raises(NoLocalTeam) as exc:
            planner.book(plan, "abc123", is_admin=True)
        assert exc.value.team_name == "FC Stern U16"
