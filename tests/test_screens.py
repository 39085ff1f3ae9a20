# tests/test_screens.py
from datetime import date

import pytest

from hms_console import schemas
from hms_console.exceptions import DepartmentInUseError
from hms_console.schemas import LoginRequest
from hms_console.services import auth
from hms_console.services.dashboard import DashboardOverview, compute_stats
from hms_console.services.screens import (
    AppointmentsScreen, DepartmentsScreen, DoctorsScreen, PatientsScreen,
)


@pytest.mark.asyncio
async def test_departments_show_doctor_and_appointment_counts(seeded_api, client, loaders, admin_session):
    screen = DepartmentsScreen(client, loaders)

    await screen.load()

    counts = {row["name"]: (row["doctor_count"], row["appointment_count"]) for row in screen.visible_rows()}
    assert counts == {"Cardiology": (1, 2), "Neurology": (1, 0)}
    assert screen.error is None


@pytest.mark.asyncio
async def test_department_in_use_is_not_deleted(seeded_api, client, loaders, admin_session):
    screen = DepartmentsScreen(client, loaders)
    await screen.load()
    requests_before = len(seeded_api.requests)

    with pytest.raises(DepartmentInUseError) as exc_info:
        await screen.delete("d1")

    assert exc_info.value.doctor_count == 1
    assert exc_info.value.appointment_count == 2
    assert len(seeded_api.requests) == requests_before


@pytest.mark.asyncio
async def test_delete_reloads_the_list(seeded_api, client, loaders, admin_session):
    seeded_api.add("DELETE", "/patients/p2", json={"message": "Patient deleted"})
    screen = PatientsScreen(client, loaders)
    await screen.load()

    assert await screen.delete("p2") is True

    assert len(seeded_api.calls("DELETE", "/patients/p2")) == 1
    assert len(seeded_api.calls("GET", "/patients")) == 2


@pytest.mark.asyncio
async def test_failed_delete_sets_screen_error(seeded_api, client, loaders, admin_session):
    seeded_api.add("DELETE", "/patients/p1", status_code=500, json={"message": "database down"})
    screen = PatientsScreen(client, loaders)
    await screen.load()

    assert await screen.delete("p1") is False

    assert screen.error.kind == "server"
    assert "database down" in screen.error.message
    assert len(seeded_api.calls("GET", "/patients")) == 1


@pytest.mark.asyncio
async def test_search_filters_visible_rows(seeded_api, client, loaders, admin_session):
    screen = PatientsScreen(client, loaders)
    await screen.load()

    assert [row["id"] for row in screen.visible_rows("BOB")] == ["p2"]
    assert [row["id"] for row in screen.visible_rows("x.com")] == ["p1", "p2"]
    assert screen.visible_rows("nobody") == []
    assert len(screen.visible_rows("  ")) == 2


@pytest.mark.asyncio
async def test_doctor_rows_carry_department_name(seeded_api, client, loaders, admin_session):
    screen = DoctorsScreen(client, loaders)
    await screen.load()

    names = {row["id"]: row["department_name"] for row in screen.visible_rows()}
    assert names == {"doc1": "Cardiology", "doc2": "Neurology"}


@pytest.mark.asyncio
async def test_appointment_rows_resolve_names_with_unknown_fallback(seeded_api, client, loaders, admin_session):
    screen = AppointmentsScreen(client, loaders)
    await screen.load()

    first, second = screen.visible_rows()
    assert (first["patient_name"], first["doctor_name"], first["department_name"]) == \
        ("Alice Wilson", "Dr. John Smith", "Cardiology")
    assert second["patient_name"] == "Bob Davis"
    assert second["doctor_name"] == "Unknown"


@pytest.mark.asyncio
async def test_results_arriving_after_a_401_are_discarded(seeded_api, client, loaders, session_store, admin_session):
    seeded_api.add("GET", "/doctors", status_code=401, json={"message": "jwt expired"})
    screen = AppointmentsScreen(client, loaders)

    await screen.load()

    assert session_store.is_authenticated is False
    assert screen.rows == []
    assert screen.lists == {}


@pytest.mark.asyncio
async def test_reference_failure_shows_error_and_retry_recovers(seeded_api, client, loaders, admin_session):
    seeded_api.add("GET", "/departments", status_code=503, json={"message": "Service unavailable"})
    screen = DoctorsScreen(client, loaders)

    await screen.load()

    assert [row["id"] for row in screen.visible_rows()] == ["doc1", "doc2"]
    assert screen.visible_rows()[0]["department_name"] == "Unknown"
    assert screen.view()["error"] == {
        "kind": "server",
        "message": "Server error while loading departments: Service unavailable.",
        "retry": True,
    }

    seeded_api.add("GET", "/departments", json=[{"_id": "d1", "dept": "Cardiology"}])
    await screen.retry()

    assert screen.error is None
    assert screen.visible_rows()[0]["department_name"] == "Cardiology"


@pytest.mark.asyncio
async def test_open_for_edit_needs_a_loaded_record(seeded_api, client, loaders, admin_session):
    screen = PatientsScreen(client, loaders)
    await screen.load()

    state = screen.open_for_edit("p1")
    assert state.draft["name"] == "Alice Wilson"
    with pytest.raises(KeyError):
        screen.open_for_edit("p404")


@pytest.mark.asyncio
async def test_clear_forgets_lists_and_closes_form(seeded_api, client, loaders, admin_session):
    screen = PatientsScreen(client, loaders)
    await screen.load()
    screen.form.open_for_create()

    screen.clear()

    assert screen.rows == []
    assert screen.view()["form"] == {"state": "closed"}


@pytest.mark.asyncio
async def test_selecting_a_department_narrows_doctor_choices(seeded_api, client, loaders, admin_session):
    screen = AppointmentsScreen(client, loaders)
    await screen.load()
    screen.form.open_for_create()
    seeded_api.add("GET", "/doctors", json=[{"_id": "doc1", "name": "Dr. John Smith", "dept": "d1"}])

    await screen.select_department("d1")

    assert screen.form.state.draft["department_id"] == "d1"
    assert screen.doctor_choices() == [{"id": "doc1", "name": "Dr. John Smith"}]
    assert seeded_api.requests[-1].url.params["departmentId"] == "d1"


@pytest.mark.asyncio
async def test_admin_sees_notes_as_read_only(seeded_api, client, loaders, admin_session):
    screen = AppointmentsScreen(client, loaders)
    await screen.load()
    screen.open_for_edit("a1")

    form = screen.view()["form"]

    assert form["mode"] == "edit"
    assert form["read_only"] == ["notes"]


def test_compute_stats_counts_today_and_recent():
    appointments = [
        schemas.Appointment.model_validate({"_id": f"a{n}", "patient": "p1", "dept": "d1",
                                            "date": f"2024-08-2{n}T09:00:00.000Z", "status": "Scheduled"})
        for n in range(1, 8)
    ]
    appointments.append(schemas.Appointment.model_validate({"_id": "a0", "patient": "p1"}))
    patients = [schemas.Patient.model_validate({"_id": "p1", "name": "Alice"})]
    doctors = [schemas.Doctor.model_validate({"_id": "doc1", "status": "Active"}),
               schemas.Doctor.model_validate({"_id": "doc2", "status": "Inactive"})]
    departments = [schemas.Department.model_validate({"_id": "d1", "dept": "Cardiology"})]

    stats = compute_stats(patients, doctors, departments, appointments, today=date(2024, 8, 23))

    assert stats.total_appointments == 8
    assert stats.today_appointments == 1
    assert stats.active_doctors == 1
    assert [a.id for a in stats.recent_appointments] == ["a7", "a6", "a5", "a4", "a3"]
    assert stats.recent_appointments[0].patient_name == "Alice"
    assert stats.recent_appointments[0].department_name == "Cardiology"


@pytest.mark.asyncio
async def test_dashboard_overview_loads_all_collections(seeded_api, client, loaders, admin_session):
    overview = DashboardOverview(client, loaders)

    await overview.load()

    stats = overview.view()["stats"]
    assert stats["total_patients"] == 2
    assert stats["total_doctors"] == 2
    assert stats["total_departments"] == 2
    assert stats["total_appointments"] == 2
    assert stats["active_doctors"] == 1
    assert overview.error is None


@pytest.mark.asyncio
async def test_dashboard_for_doctor_skips_doctor_list(seeded_api, client, loaders, doctor_session):
    overview = DashboardOverview(client, loaders)

    await overview.load()

    assert seeded_api.calls("GET", "/doctors") == []
    assert overview.stats.total_doctors == 0
    assert overview.stats.total_patients == 2


@pytest.mark.asyncio
async def test_login_as_another_user_drops_loaded_rows(seeded_api, console):
    console.session.establish("t1", "admin@x.com", schemas.UserRole.admin)
    screen = console.screen("patients")
    await screen.load()
    assert len(screen.view()["rows"]) == 2
    seeded_api.add("POST", "/auth/login", json={
        "success": True, "token": "t2", "role": "doctor", "user": {"status": "Active"},
    })

    await auth.login(console.client, LoginRequest(email="doc@x.com", password="secret1"))

    assert screen.view()["rows"] == []


@pytest.mark.asyncio
async def test_department_filter_leaves_row_labels_alone(seeded_api, client, loaders, admin_session):
    screen = AppointmentsScreen(client, loaders)
    await screen.load()
    screen.form.open_for_create()
    seeded_api.add("GET", "/doctors", json=[{"_id": "doc2", "name": "Dr. Sarah Johnson", "dept": "d2"}])

    await screen.select_department("d2")
    screen.form.cancel()

    assert [row["doctor_name"] for row in screen.visible_rows()] == ["Dr. John Smith", "Unknown"]
    assert screen.doctor_choices() == [{"id": "doc2", "name": "Dr. Sarah Johnson"}]
    assert [d.id for d in screen.lists["doctors"]] == ["doc1", "doc2"]


@pytest.mark.asyncio
async def test_reload_offers_every_doctor_again(seeded_api, client, loaders, admin_session):
    screen = AppointmentsScreen(client, loaders)
    await screen.load()
    screen.form.open_for_create()
    seeded_api.add("GET", "/doctors", json=[{"_id": "doc2", "name": "Dr. Sarah Johnson", "dept": "d2"}])
    await screen.select_department("d2")
    seed_doctors = [{"_id": "doc1", "name": "Dr. John Smith"}, {"_id": "doc2", "name": "Dr. Sarah Johnson"}]
    seeded_api.add("GET", "/doctors", json=seed_doctors)

    await screen.load()

    assert [choice["id"] for choice in screen.doctor_choices()] == ["doc1", "doc2"]


@pytest.mark.asyncio
async def test_unauthorized_delete_leaves_cleared_screen_without_error(console, seeded_api):
    console.session.establish("t1", "admin@x.com", schemas.UserRole.admin)
    screen = console.screen("patients")
    await screen.load()
    seeded_api.add("DELETE", "/patients/p1", status_code=401, json={"message": "jwt expired"})

    assert await screen.delete("p1") is False

    assert console.session.is_authenticated is False
    assert screen.rows == []
    assert screen.error is None


@pytest.mark.asyncio
async def test_unauthorized_department_filter_leaves_cleared_screen_without_error(console, seeded_api):
    console.session.establish("t1", "admin@x.com", schemas.UserRole.admin)
    screen = console.screen("appointments")
    await screen.load()
    screen.form.open_for_create()
    seeded_api.add("GET", "/doctors", status_code=401, json={"message": "jwt expired"})

    await screen.select_department("d1")

    assert screen.error is None
    assert screen.lists == {}
    assert screen.doctor_choices() == []
