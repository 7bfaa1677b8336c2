from datetime import timedelta

import pytest

from vetperto.errors import Conflict, NotFound, PermissionDenied, ValidationFailed
from vetperto.models.tables import Availability
from vetperto.services.reviews import (
    create_review,
    ensure_can_moderate,
    get_rating,
    list_pending_reviews,
    list_public_reviews,
    moderate_review,
)
from vetperto.services.search import SearchFilters, haversine_km, search_professionals

SAO_PAULO = (-23.5505, -46.6333)
CAMPINAS = (-22.9056, -47.0608)


def review(db, tutor, professional, make_appointment, day, rating, approve=True, moderator=None):
    appt = make_appointment(tutor, professional, day, "09:00", "10:00", status="completed")
    obj = create_review(db, tutor.id, appt.id, rating, "Ótimo atendimento")
    if approve:
        obj = moderate_review(db, obj.id, moderator or tutor.id, approve=True)
    return obj


# ── Reviews ──────────────────────────────────────────────────────────────


def test_review_lifecycle(db, admin, tutor, professional, make_appointment, day):
    appt = make_appointment(tutor, professional, day, "09:00", "10:00", status="completed")

    created = create_review(db, tutor.id, appt.id, 4, "  Muito atencioso  ")

    assert created.comment == "Muito atencioso"
    assert created.professional_profile_id == professional.id
    assert [r.id for r in list_pending_reviews(db)] == [created.id]
    # unmoderated reviews are not public
    assert get_rating(db, professional.id) == {"average": 0.0, "count": 0}
    assert list_public_reviews(db, professional.id) == []

    moderated = moderate_review(db, created.id, admin.id, approve=True, notes="ok")

    assert moderated.is_moderated and moderated.is_approved
    assert moderated.moderated_by == admin.id
    assert list_pending_reviews(db) == []
    assert get_rating(db, professional.id) == {"average": 4.0, "count": 1}

    with pytest.raises(Conflict):
        create_review(db, tutor.id, appt.id, 5)


def test_rejected_review_stays_hidden(db, admin, tutor, professional, make_appointment, day):
    appt = make_appointment(tutor, professional, day, "09:00", "10:00", status="completed")
    created = create_review(db, tutor.id, appt.id, 1)

    moderate_review(db, created.id, admin.id, approve=False, notes="Linguagem ofensiva")

    assert list_public_reviews(db, professional.id) == []
    assert list_pending_reviews(db) == []


def test_review_rules(db, make_profile, tutor, professional, make_appointment, day):
    pending = make_appointment(tutor, professional, day, "09:00", "10:00")
    completed = make_appointment(tutor, professional, day, "10:00", "11:00", status="completed")
    stranger = make_profile("tutor")

    with pytest.raises(ValidationFailed) as exc:
        create_review(db, tutor.id, pending.id, 5)
    assert exc.value.code == "not_completed"
    with pytest.raises(NotFound):
        create_review(db, stranger.id, completed.id, 5)
    with pytest.raises(ValidationFailed):
        create_review(db, tutor.id, completed.id, 6)
    with pytest.raises(NotFound):
        moderate_review(db, 999, tutor.id, approve=True)


def test_average_rating(db, tutor, professional, make_appointment, day):
    for offset, rating in enumerate((5, 4, 4)):
        review(db, tutor, professional, make_appointment, day + timedelta(days=offset), rating)

    assert get_rating(db, professional.id) == {"average": 4.33, "count": 3}


def test_ensure_can_moderate():
    ensure_can_moderate(["user", "moderator"])
    ensure_can_moderate(["admin"])
    with pytest.raises(PermissionDenied):
        ensure_can_moderate(["user"])


# ── Search ───────────────────────────────────────────────────────────────


@pytest.fixture
def directory(db, make_professional, make_profile):
    """Two searchable professionals, one inactive and one tutor."""
    derm = make_professional(
        full_name="Dra. Paula",
        specialty="Dermatologia",
        payment_methods='["pix", "cartao"]',
        verification_status="verified",
        latitude=SAO_PAULO[0],
        longitude=SAO_PAULO[1],
    )
    home = make_professional(
        full_name="Dr. João",
        specialty="Clínica geral",
        payment_methods='["dinheiro"]',
        latitude=CAMPINAS[0],
        longitude=CAMPINAS[1],
        home_service_radius_km=100,
    )
    (
        db.query(Availability)
        .filter(Availability.profile_id == home.id)
        .update({"location_type": "home_visit"})
    )
    db.commit()
    make_professional(full_name="Inativo", specialty="Dermatologia", is_active=0)
    make_profile("tutor", specialty="Dermatologia")
    return {"derm": derm, "home": home}


def ids(results):
    return [r["id"] for r in results]


def test_search_by_service_text(db, directory):
    derm, home = directory["derm"], directory["home"]

    assert ids(search_professionals(db, SearchFilters(service="derma"))) == [derm.id]
    assert sorted(ids(search_professionals(db, SearchFilters(service="consulta")))) == sorted([derm.id, home.id])
    assert search_professionals(db, SearchFilters(service="cardio")) == []


def test_search_by_location_type(db, directory):
    derm, home = directory["derm"], directory["home"]

    assert ids(search_professionals(db, SearchFilters(location_type="domiciliar"))) == [home.id]
    assert sorted(ids(search_professionals(db, SearchFilters(location_type="clinica")))) == sorted([derm.id, home.id])

    with pytest.raises(ValidationFailed):
        search_professionals(db, SearchFilters(location_type="spa"))


def test_search_by_payment_method(db, directory):
    assert ids(search_professionals(db, SearchFilters(payment_methods=["PIX"]))) == [directory["derm"].id]
    assert ids(search_professionals(db, SearchFilters(payment_methods=["dinheiro", "boleto"]))) == [directory["home"].id]


def test_search_by_rating(db, directory, tutor, make_appointment, day):
    derm, home = directory["derm"], directory["home"]
    review(db, tutor, derm, make_appointment, day, 5)
    review(db, tutor, home, make_appointment, day, 3)

    results = search_professionals(db, SearchFilters())
    assert ids(results) == [derm.id, home.id]
    assert results[0]["rating"] == 5.0
    assert results[0]["review_count"] == 1

    assert ids(search_professionals(db, SearchFilters(min_rating=4))) == [derm.id]


def test_unrated_verified_profiles_come_first(db, directory):
    results = search_professionals(db, SearchFilters())

    assert ids(results) == [directory["derm"].id, directory["home"].id]
    assert results[0]["is_verified"]
    assert not results[1]["is_verified"]


def test_search_by_distance(db, directory):
    derm, home = directory["derm"], directory["home"]
    lat, lng = SAO_PAULO

    results = search_professionals(db, SearchFilters(latitude=lat, longitude=lng))
    assert ids(results) == [derm.id, home.id]
    assert results[0]["distance_km"] == 0.0
    assert 70 < results[1]["distance_km"] < 100

    nearby = search_professionals(db, SearchFilters(latitude=lat, longitude=lng, radius_km=10))
    assert ids(nearby) == [derm.id]

    # home visits also reach tutors inside the professional's own radius
    visits = search_professionals(
        db, SearchFilters(latitude=lat, longitude=lng, radius_km=10, location_type="domiciliar")
    )
    assert ids(visits) == [home.id]


def test_search_validates_coordinates(db, directory):
    with pytest.raises(ValidationFailed):
        search_professionals(db, SearchFilters(latitude=-23.5))
    with pytest.raises(ValidationFailed):
        search_professionals(db, SearchFilters(latitude=91, longitude=0))
    with pytest.raises(ValidationFailed):
        search_professionals(db, SearchFilters(latitude=0, longitude=-181))


def test_search_result_shape(db, directory):
    result = search_professionals(db, SearchFilters(service="derma"))[0]

    assert result["services"] == ["Consulta"]
    assert result["payment_methods"] == ["pix", "cartao"]
    assert result["location_types"] == ["clinic"]
    assert result["distance_km"] is None


def test_haversine():
    assert haversine_km(*SAO_PAULO, *SAO_PAULO) == 0.0
    # São Paulo → Rio de Janeiro
    assert 340 < haversine_km(*SAO_PAULO, -22.9068, -43.1729) < 380
