import json

import pytest

from vetperto.errors import Conflict, PermissionDenied, ValidationFailed
from vetperto.i18n import normalize_lang, t
from vetperto.models.tables import AdminLogs, Documents
from vetperto.services.accounts import (
    authenticate,
    client_type_for,
    create_session,
    destroy_session,
    get_roles,
    register,
    resolve_session,
    update_profile,
)
from vetperto.services.admin import get_stats, list_logs, list_users
from vetperto.services.credits import check_professional_credits
from vetperto.services.notifications import list_notifications, mark_all_read, mark_read, notify, unread_count
from vetperto.services.verification import add_document, can_verify_profile, set_verification_status


# ── Registration and login ───────────────────────────────────────────────


def test_register_professional_gets_starter_credits(db):
    profile = register(db, "  Vet@Example.com ", "secret123", "Dra. Carla", "profissional")

    assert profile.email == "vet@example.com"
    assert get_roles(db, profile.id) == ["user"]
    assert check_professional_credits(db, profile.id)["remaining"] == 5


def test_register_tutor_has_no_credits(db):
    profile = register(db, "tutor@example.com", "secret123", "Ana")

    assert profile.user_type == "tutor"
    assert check_professional_credits(db, profile.id)["remaining"] == 0


def test_register_rules(db):
    register(db, "dup@example.com", "secret123", "Ana")

    with pytest.raises(Conflict):
        register(db, "DUP@example.com", "secret123", "Ana")
    # the same e-mail may hold one account per user type
    register(db, "dup@example.com", "secret123", "Ana Vet", "profissional")

    with pytest.raises(ValidationFailed):
        register(db, "short@example.com", "123", "Ana")
    with pytest.raises(ValidationFailed):
        register(db, "admin@example.com", "secret123", "Ana", "admin")


def test_authenticate(db, make_profile):
    profile = make_profile("tutor", email="ana@example.com")

    assert authenticate(db, "ANA@example.com", "secret123").id == profile.id
    with pytest.raises(PermissionDenied) as exc:
        authenticate(db, "ana@example.com", "wrong")
    assert exc.value.code == "invalid_credentials"

    profile.is_active = 0
    db.commit()
    with pytest.raises(PermissionDenied):
        authenticate(db, "ana@example.com", "secret123")


def test_sessions(redis, tutor):
    token = create_session(redis, tutor.id, "tutor")

    assert resolve_session(redis, token) == {"profile_id": tutor.id, "client_type": "tutor"}
    assert redis.ttl(f"session:{token}") > 0

    destroy_session(redis, token)
    assert resolve_session(redis, token) is None

    redis.set("session:broken", "not json")
    assert resolve_session(redis, "broken") is None


def test_client_type(db, tutor, professional, admin, make_profile):
    assert client_type_for(db, tutor) == "tutor"
    assert client_type_for(db, professional) == "professional"
    assert client_type_for(db, make_profile("empresa")) == "company"
    assert client_type_for(db, admin) == "admin"


def test_update_profile(db, professional):
    updated = update_profile(db, professional, {
        "bio": "Atendimento a felinos",
        "payment_methods": ["pix"],
        "email": "hijack@example.com",
    })

    assert updated.bio == "Atendimento a felinos"
    assert json.loads(updated.payment_methods) == ["pix"]
    assert updated.email != "hijack@example.com"

    with pytest.raises(ValidationFailed):
        update_profile(db, professional, {"latitude": 120.0})


# ── Verification ─────────────────────────────────────────────────────────


def test_professional_documents_move_to_review(db, professional):
    add_document(db, professional, "rg", "https://files.example.com/rg.pdf")
    assert professional.verification_status == "not_verified"
    assert not can_verify_profile(db, professional)

    add_document(db, professional, "crmv", "https://files.example.com/crmv.pdf")

    assert professional.verification_status == "under_review"
    assert can_verify_profile(db, professional)


def test_company_needs_cnpj_card(db, make_professional):
    company = make_professional(user_type="empresa")

    add_document(db, company, "cnh", "https://files.example.com/cnh.pdf")
    assert not can_verify_profile(db, company)

    add_document(db, company, "cnpj_card", "https://files.example.com/cnpj.pdf")
    assert company.verification_status == "under_review"


def test_document_rules(db, tutor, professional):
    with pytest.raises(ValidationFailed):
        add_document(db, tutor, "rg", "https://files.example.com/rg.pdf")
    with pytest.raises(ValidationFailed):
        add_document(db, professional, "passport", "https://files.example.com/p.pdf")


def test_set_verification_status(db, admin, professional):
    with pytest.raises(ValidationFailed) as exc:
        set_verification_status(db, admin.id, professional.id, "verified")
    assert exc.value.code == "documents_missing"

    add_document(db, professional, "cnh", "https://files.example.com/cnh.pdf")
    add_document(db, professional, "crmv", "https://files.example.com/crmv.pdf")

    profile = set_verification_status(db, admin.id, professional.id, "verified")

    assert profile.verification_status == "verified"
    assert {d.status for d in db.query(Documents).filter(Documents.profile_id == professional.id)} == {"approved"}
    log = db.query(AdminLogs).one()
    assert log.action == "verification_status_changed"
    assert json.loads(log.details)["to"] == "verified"
    assert unread_count(db, professional.id) == 1

    with pytest.raises(ValidationFailed):
        set_verification_status(db, admin.id, professional.id, "approved")


# ── Notifications ────────────────────────────────────────────────────────


def test_notifications(db, tutor, make_profile):
    first = notify(db, tutor.id, "appointment_reminder", "09:00", type="reminder")
    second = notify(db, tutor.id, "appointment_cancelled", "2030-01-07", "09:00")
    db.commit()

    assert "09:00" in first.message
    assert first.title != "appointment_reminder_title"
    assert unread_count(db, tutor.id) == 2
    assert len(list_notifications(db, tutor.id)) == 2

    stranger = make_profile("tutor")
    assert mark_read(db, stranger.id, first.id) is None

    read = mark_read(db, tutor.id, first.id)
    assert read.is_read == 1
    assert read.read_at is not None
    assert [n.id for n in list_notifications(db, tutor.id, unread_only=True)] == [second.id]

    assert mark_all_read(db, tutor.id) == 1
    assert unread_count(db, tutor.id) == 0


def test_notification_language(db, tutor):
    pt = notify(db, tutor.id, "credits_low", 2)
    en = notify(db, tutor.id, "credits_low", 2, lang="en")

    assert pt.title != en.title
    assert "2" in en.message


# ── Admin ────────────────────────────────────────────────────────────────


def test_admin_stats(db, admin, tutor, professional, make_appointment, day):
    make_appointment(tutor, professional, day, "09:00", "10:00")
    make_appointment(tutor, professional, day, "10:00", "11:00", status="cancelled")

    stats = get_stats(db)

    assert stats["profiles"] == {"tutor": 2, "profissional": 1, "empresa": 0, "total": 3}
    assert stats["appointments"]["pending"] == 1
    assert stats["appointments"]["cancelled"] == 1
    assert stats["pending_reviews"] == 0

    assert [p.id for p in list_users(db, "profissional")] == [professional.id]
    assert len(list_users(db, limit=2)) == 2
    assert list_logs(db) == []


def test_message_language_fallbacks():
    assert normalize_lang("en-US") == "en"
    assert normalize_lang("pt_BR") == "pt"
    assert normalize_lang("de") == "pt"
    assert normalize_lang(None) == "pt"
    assert t("no_such_key", "en") == "no_such_key"
    assert t("credits_low_message", "en", 2) != t("credits_low_message", "en")
